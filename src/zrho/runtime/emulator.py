''' Host-facing entry points: load, step, run, inspect '''

import sys
import logging as lg
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List

import click

import zrho.machine.profile as mp
from zrho.machine.profile import MachineProfile
from zrho.runtime.cpu import CPU, ExecutionState, Halt
from zrho.runtime.faults import Fault, StepBudgetExceeded
from zrho.zasm.asm import load_program, load_source
from zrho.zasm.errors import AssemblyError
from zrho.zasm.program import Program


EXIT_HALT = 0
EXIT_PARSE_ERROR = 1
EXIT_FAULT = 2
EXIT_KEYBOARD = 3
EXIT_BUDGET = 4

# Register values shown around the current index
WINDOW = 19


class StepOutcome(Enum):
    CONTINUED = 'continued'
    HALTED = 'halted'


@dataclass(frozen=True)
class RunOutcome:
    steps: int      # Instructions executed by this run
    ticks: int      # Elapsed ticks when the machine halted


def new_execution_state(program: Program) -> ExecutionState:
    return ExecutionState(program)


def reset(state: ExecutionState):
    lg.debug('Machine reset')
    state.reset()


def step(state: ExecutionState) -> StepOutcome:
    if state.fault is not None:
        raise state.fault

    if state.halted:
        return StepOutcome.HALTED

    proc = CPU(state)
    start = state.timing.ticks

    try:
        proc.exec_next()

    except Halt:
        state.halted = True
        lg.info(f'Execution halted gracefully after {state.ticks} ticks')
        return StepOutcome.HALTED

    except Fault as e:
        # Leave the state as it was before the faulting instruction
        state.timing.ticks = start
        state.previous = None
        state.fault = e
        lg.info(f'Execution halted on fault at instruction {state.pc}: {e}')
        raise

    if lg.getLogger().isEnabledFor(lg.DEBUG):
        proc.debug_dump()

    return StepOutcome.CONTINUED


def run(state: ExecutionState, max_steps: int) -> RunOutcome:
    executed = state.executed

    for _ in range(max_steps):
        if step(state) == StepOutcome.HALTED:
            return RunOutcome(state.executed - executed, state.ticks)

    # The budget may run out exactly on the last instruction
    if state.pc >= len(state.program) and not state.halted:
        step(state)
        return RunOutcome(state.executed - executed, state.ticks)

    raise StepBudgetExceeded(max_steps)


def snapshot(state: ExecutionState) -> Dict[str, Any]:
    return {
        'registers': state.bank.dump(),
        'elapsed_ticks': state.ticks,
        'halted': state.halted,
        'pc': state.pc,
        'executed': state.executed,
        'blocked': {
            name: release
            for name in state.profile.registers
            if (release := state.bank.blocked_until(name)) is not None
        },
    }


def format_storage(values: List[int], index: int) -> str:
    ''' Shows a window of values with the indexed one marked by ">" '''
    if len(values) <= WINDOW + 2:
        start, end = 0, len(values)
    else:
        current = min(max(index, 0), len(values) - 1)
        start = min(max(current - WINDOW // 2, 0), len(values) - WINDOW)
        end = start + WINDOW

    width = max(len(str(v)) for v in values)
    items = [f'{">" if i == index else " "}{values[i]:>{width}}' for i in range(start, end)]

    head = '[...,' if start > 0 else '['
    tail = ', ...]' if end < len(values) else ']'
    return f'{head}{",".join(items)}{tail}[{index}]'


def describe(state: ExecutionState) -> str:
    ''' Human readable register dump '''
    lines = []
    cells = state.bank.dump()

    for name, spec in state.profile.registers.items():
        value = cells[name]

        if isinstance(value, list):
            index = cells[spec.index]  # type: ignore
            text = f'{name}: {format_storage(value, index)}'  # type: ignore
        else:
            text = f'{name}: {value}'

        release = state.bank.blocked_until(name)

        if release is not None:
            wait = release - state.ticks
            text += f' (waiting for {wait} tick{"" if wait == 1 else "s"})'

        lines.append(text)

    lines.append(f'Runtime: {state.ticks}')
    lines.append(f'Instructions executed: {state.executed}')
    return '\n'.join(lines)


def open_profile(machine: str) -> MachineProfile:
    if machine.endswith('.toml'):
        return mp.load_profile(machine)

    return mp.builtin_profile(machine)


@click.command()
@click.option('-v', '--verbose', is_flag=True, help='Sets logging level to debug')
@click.option('-m', '--machine', default='standard', help='Built-in machine name or profile TOML')
@click.option('-s', '--max-steps', type=int, default=100000, help='Step budget')
@click.argument('source_filename', type=Path)
def main(verbose: bool, machine: str, max_steps: int, source_filename: Path):
    lg.basicConfig(level=lg.DEBUG if verbose else lg.INFO)
    lg.info('ZRHO')

    try:
        program = load_program(load_source(source_filename), open_profile(machine), source_filename.stem)
    except AssemblyError as e:
        for error in e.errors:
            lg.error(str(error))

        sys.exit(EXIT_PARSE_ERROR)

    state = new_execution_state(program)

    try:
        run(state, max_steps)
        code = EXIT_HALT

    except Fault:
        code = EXIT_FAULT

    except StepBudgetExceeded as e:
        lg.info(f'Execution stopped: {e}')
        code = EXIT_BUDGET

    except KeyboardInterrupt:
        lg.info('Execution halted by the user')
        code = EXIT_KEYBOARD

    lg.info(describe(state))
    sys.exit(code)


if __name__ == '__main__':
    main()
