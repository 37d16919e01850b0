''' Tick accounting '''

import logging as lg
from dataclasses import dataclass

import zrho.common.ops as ops
import zrho.machine.profile as mp
from zrho.zasm.program import Instruction, Operand


class Timing:
    ticks: int  # Elapsed ticks

    def __init__(self):
        self.ticks = 0

    def charge(self, cost: int):
        self.ticks += cost

    def stall_until(self, tick: int) -> int:
        waited = max(0, tick - self.ticks)

        if waited:
            lg.debug(f'Stalled {waited} ticks until {tick}')
            self.ticks += waited

        return waited


@dataclass(frozen=True)
class Record:
    ''' Divider usage of the previous instruction '''
    op: str
    sources: tuple[Operand | None, ...]
    values: tuple[int, ...]


def is_paired(previous: Record | None, current: Record) -> bool:
    return previous is not None \
        and previous.op == ops.PAIRED.get(current.op) \
        and previous.sources == current.sources \
        and previous.values == current.values


def branch_tier(taken: bool) -> str:
    return mp.TAKEN if taken else mp.FALLTHROUGH


def read_cost(profile: mp.MachineProfile, instruction: Instruction) -> int:
    # Reads overlap, the slowest register sets the time
    return max(
        (profile.register_spec(name).read_cost for name in instruction.read_registers()),
        default=0
    )
