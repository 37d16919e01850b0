import logging as lg
from typing import Callable, Dict

import zrho.common.ops as ops
import zrho.machine.profile as mp
from zrho.runtime.conditions import evaluate, resolve
from zrho.runtime.faults import DivisionByZero, Fault
from zrho.runtime.registers import RegisterBank
from zrho.runtime.timing import Record, Timing, branch_tier, is_paired, read_cost
from zrho.zasm.program import Condition, Immediate, Instruction, Label, Operand, Program, Register


class Halt(Exception):
    pass


def div_euclid(a: int, b: int) -> int:
    return (a - rem_euclid(a, b)) // b


def rem_euclid(a: int, b: int) -> int:
    return a % abs(b)


class ExecutionState:
    program: Program
    timing: Timing
    bank: RegisterBank
    pc: int                         # Index of the next instruction
    halted: bool
    previous: Record | None         # Divider usage of the last instruction
    executed: int                   # Instructions executed so far
    fault: Fault | None
    counted_tick: int               # Tick the group counts belong to
    tick_counts: Dict[str, int]     # Instruction group -> executions this tick

    def __init__(self, program: Program):
        if program.profile is None:
            raise ValueError('Program was not loaded for a machine')

        self.program = program
        self.profile: mp.MachineProfile = program.profile
        self.timing = Timing()
        self.bank = RegisterBank(self.profile, self.timing)
        self.reset()

    def reset(self):
        self.timing.ticks = 0
        self.bank.reset()
        self.pc = 0
        self.halted = False
        self.previous = None
        self.executed = 0
        self.fault = None
        self.counted_tick = 0
        self.tick_counts = dict()

    @property
    def ticks(self) -> int:
        return self.timing.ticks

    def tick_count(self, group: str) -> int:
        if self.counted_tick != self.ticks:
            return 0

        return self.tick_counts.get(group, 0)

    def count_in_tick(self, group: str):
        if self.counted_tick != self.ticks:
            self.counted_tick = self.ticks
            self.tick_counts = dict()

        self.tick_counts[group] = self.tick_counts.get(group, 0) + 1


class CPU():
    state: ExecutionState

    def __init__(self, state: ExecutionState):
        self.state = state
        self.profile = state.profile
        self.bank = state.bank

        # Per instruction scratch
        self.cost = 0
        self.next_pc = 0
        self.record: Record | None = None

    # - Helpers - #

    def debug_dump(self):
        state = [f'{k}:{v}' for k, v in {
            'PC': self.state.pc,
            'T': self.state.ticks,
        }.items()]

        state.extend([f'{name}:{value}' for name, value in self.bank.dump().items()
                      if not isinstance(value, list)])

        lg.debug(' '.join(state))

    def await_slot(self, instr: Instruction):
        limit = self.profile.tick_limit(instr.op)
        group = self.profile.tick_group(instr.op)

        if limit is not None and self.state.tick_count(group) >= limit:
            lg.debug(f'{group} already ran {limit} time(s) on tick {self.state.ticks}')
            self.state.timing.charge(1)

    def charge(self, op: str, tier: str = mp.BASE):
        self.cost += self.profile.timing_for(op, tier)

    def value(self, operand: Operand | None) -> int:
        assert isinstance(operand, (Register, Immediate))
        return resolve(operand, self.bank)

    def condition(self, operand: Operand | None) -> bool:
        assert isinstance(operand, Condition)
        return evaluate(operand, self.bank)

    def write(self, operand: Operand | None, value: int):
        assert isinstance(operand, Register)
        self.bank.write(operand.name, value)
        self.cost += self.profile.register_spec(operand.name).write_cost

    def jump(self, operand: Operand | None):
        assert isinstance(operand, Label)
        self.next_pc = self.state.program.target(operand)

    def arithm_pair(self, instr: Instruction, op: Callable[[int, int], int]):
        a = self.value(instr.operands[0])
        b = self.value(instr.operands[1])
        self.write(instr.operands[2], op(a, b))
        self.charge(instr.op)

    def divider(self, instr: Instruction, op: Callable[[int, int], int]):
        a = self.value(instr.operands[0])
        b = self.value(instr.operands[1])

        if b == 0:
            raise DivisionByZero(instr.line)

        record = Record(instr.op, instr.operands[:2], (a, b))

        if is_paired(self.state.previous, record):
            # A discounted result cannot discount the next one
            self.charge(instr.op, mp.PAIRED)
        else:
            self.charge(instr.op)
            self.record = record

        self.write(instr.operands[2], op(a, b))

    def branch(self, instr: Instruction, taken: bool):
        if taken:
            self.jump(instr.operands[1])

        self.charge(instr.op, branch_tier(taken))

    # - Operations - #

    def set(self, instr: Instruction):
        self.write(instr.operands[0], self.value(instr.operands[1]))
        self.charge(instr.op)

    def add(self, instr: Instruction):
        self.arithm_pair(instr, lambda a, b: a + b)

    def sub(self, instr: Instruction):
        self.arithm_pair(instr, lambda a, b: a - b)

    def mul(self, instr: Instruction):
        self.arithm_pair(instr, lambda a, b: a * b)

    def div(self, instr: Instruction):
        self.divider(instr, div_euclid)

    def rem(self, instr: Instruction):
        self.divider(instr, rem_euclid)

    def neg(self, instr: Instruction):
        self.write(instr.operands[0], -self.value(instr.operands[0]))
        self.charge(instr.op)

    def odd(self, instr: Instruction):
        self.write(instr.operands[0], rem_euclid(self.value(instr.operands[0]), 2))
        self.charge(instr.op)

    def cmp(self, instr: Instruction):
        self.write(instr.operands[1], int(self.condition(instr.operands[0])))
        self.charge(instr.op)

    def tcp(self, instr: Instruction):
        if self.condition(instr.operands[0]):
            self.write(instr.operands[1], 1)

        self.charge(instr.op)

    def fcp(self, instr: Instruction):
        if not self.condition(instr.operands[0]):
            self.write(instr.operands[1], 0)

        self.charge(instr.op)

    def jmp(self, instr: Instruction):
        cond = instr.operands[0]
        self.branch(instr, cond is None or self.condition(cond))

    def ljp(self, instr: Instruction):
        self.branch(instr, self.condition(instr.operands[0]))

    def ujp(self, instr: Instruction):
        self.branch(instr, self.condition(instr.operands[0]))

    def slp(self, instr: Instruction):
        self.cost += max(self.value(instr.operands[0]), 0)
        self.charge(instr.op)

    def try_read(self, instr: Instruction):
        name = instr.registers()[0]
        self.bank.touch(name)
        self.cost += self.profile.register_spec(name).read_cost
        self.charge(instr.op)

    def try_write(self, instr: Instruction):
        name = instr.registers()[0]
        self.bank.touch(name)
        self.cost += self.profile.register_spec(name).write_cost
        self.charge(instr.op)

    def clk(self, instr: Instruction):
        shift = instr.operands[1]
        digits = max(shift.value, 0) if isinstance(shift, Immediate) else 0
        self.write(instr.operands[0], self.state.ticks // 10 ** digits)
        self.charge(instr.op)

    def end(self, instr: Instruction):
        self.charge(instr.op)
        self.next_pc = self.state.pc
        raise Halt()

    HANDLERS = {
        ops.SET: set,
        ops.ADD: add,
        ops.SUB: sub,
        ops.NEG: neg,
        ops.MUL: mul,
        ops.DIV: div,
        ops.REM: rem,
        ops.ODD: odd,

        ops.CMP: cmp,
        ops.TCP: tcp,
        ops.FCP: fcp,

        ops.JMP: jmp,
        ops.LJP: ljp,
        ops.UJP: ujp,
        ops.END: end,

        ops.SLP: slp,
        ops.TRY: try_read,
        ops.TRW: try_write,
        ops.CLK: clk
    }

    # -- Implementation -- #

    def commit(self, instr: Instruction):
        state = self.state
        state.count_in_tick(self.profile.tick_group(instr.op))
        state.pc = self.next_pc
        state.previous = self.record
        state.executed += 1
        state.timing.charge(self.cost)

    def exec_next(self):
        state = self.state

        if state.halted:
            raise Halt()

        if state.pc >= len(state.program):
            # Running past the last instruction completes the program
            raise Halt()

        instr = state.program.instructions[state.pc]
        handler = self.HANDLERS[instr.op]

        self.await_slot(instr)
        self.cost = read_cost(self.profile, instr)
        self.next_pc = state.pc + 1
        self.record = None

        try:
            handler(self, instr)
        except Halt:
            self.commit(instr)
            raise

        self.commit(instr)
        lg.debug(f'Line {instr.line} ({instr}): {self.cost} ticks')
