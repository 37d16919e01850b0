import logging as lg
from typing import Dict, List

from zrho.machine.profile import MachineProfile, RegisterClass, RegisterSpec
from zrho.runtime.faults import OutOfBoundsAccess, ValueOutOfRange
from zrho.runtime.timing import Timing


class RegisterBank:
    profile: MachineProfile
    timing: Timing
    cells: Dict[str, List[int]]
    block_release: Dict[str, int]   # Storage register -> tick the block lifts

    def __init__(self, profile: MachineProfile, timing: Timing):
        self.profile = profile
        self.timing = timing
        self.reset()

    def reset(self):
        self.cells = {
            name: [0] * spec.capacity
            for name, spec in self.profile.registers.items()
        }

        self.block_release = dict()

    # - Helpers - #

    def effective_index(self, spec: RegisterSpec, index: int | None = None) -> int:
        if not spec.is_storage():
            return 0

        if index is None:
            index = self.cells[spec.index][0]  # type: ignore

        if not 0 <= index < spec.capacity:
            raise OutOfBoundsAccess(spec.name, index)

        return index

    def wait(self, name: str):
        release = self.blocked_until(name)

        if release is not None:
            lg.debug(f'{name} is blocked until tick {release}')
            self.timing.stall_until(release)

    def blocked_until(self, name: str) -> int | None:
        release = self.block_release.get(name)

        if release is None or release <= self.timing.ticks:
            return None

        return release

    def on_index_write(self, index: str, old: int, new: int):
        for storage in self.profile.storage_indexed_by(index):
            rule = storage.block

            if rule is not None and abs(new - old) >= rule.min_change:
                release = self.timing.ticks + rule.ticks
                self.block_release[storage.name] = release
                lg.debug(f'{storage.name} blocked until {release} ({index}: {old} -> {new})')

    # - Access - #

    def read(self, name: str, index: int | None = None) -> int:
        spec = self.profile.register_spec(name)
        i = self.effective_index(spec, index)

        if spec.is_storage():
            self.wait(name)

        return self.cells[name][i]

    def write(self, name: str, value: int, index: int | None = None):
        spec = self.profile.register_spec(name)

        if not spec.accepts(value):
            raise ValueOutOfRange(name, value)

        i = self.effective_index(spec, index)

        if spec.is_storage():
            self.wait(name)

        old = self.cells[name][i]
        self.cells[name][i] = value

        if spec.cls == RegisterClass.INDEX:
            self.on_index_write(name, old, value)

    def touch(self, name: str):
        ''' Waits for the register without touching its value '''
        self.profile.register_spec(name)
        self.wait(name)

    def dump(self) -> Dict[str, int | List[int]]:
        return {
            name: (list(values) if self.profile.registers[name].is_storage() else values[0])
            for name, values in self.cells.items()
        }
