''' Machine profiles: which registers and instructions a machine has, and what they cost '''

import logging as lg
import tomllib
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterable, List

import zrho.common.hwconf as hw
import zrho.common.ops as ops
from zrho.zasm.errors import AssemblyError, ErrorKind, ParseError
from zrho.zasm.program import Instruction, Program


PROFILES_DIR = Path(__file__).parent / 'profiles'

BASE = 'base'
PAIRED = 'paired'
TAKEN = 'taken'
FALLTHROUGH = 'fallthrough'

TIERS = (BASE, PAIRED, TAKEN, FALLTHROUGH)


class ProfileError(Exception):
    pass


class RegisterClass(Enum):
    GENERAL = 'general'
    INDEX = 'index'
    STORAGE = 'storage'
    SEEKING = 'seeking'     # Reserved

    def letters(self) -> str:
        match self:
            case RegisterClass.GENERAL:
                return hw.GENERAL_REGISTERS
            case RegisterClass.INDEX:
                return hw.INDEX_REGISTERS
            case RegisterClass.STORAGE:
                return hw.STORAGE_REGISTERS
            case _:
                return ''


@dataclass(frozen=True)
class BlockRule:
    min_change: int = hw.BLOCK_MIN_CHANGE
    ticks: int = hw.BLOCK_TICKS


@dataclass(frozen=True)
class RegisterSpec:
    name: str
    cls: RegisterClass
    capacity: int
    minimum: int
    maximum: int
    read_cost: int = 0
    write_cost: int = 0
    index: str | None = None            # Index register of a storage register
    block: BlockRule | None = None

    @property
    def bounds(self) -> tuple[int, int]:
        return (self.minimum, self.maximum)

    def is_storage(self) -> bool:
        return self.cls == RegisterClass.STORAGE

    def accepts(self, value: int) -> bool:
        return self.minimum <= value <= self.maximum


class MachineProfile:
    name: str
    digits: int
    registers: Dict[str, RegisterSpec]
    instructions: Dict[str, Dict[str, int]]
    tick_limits: Dict[str, int]         # Instruction -> executions of its group per tick
    tick_groups: Dict[str, str]         # Instruction -> group sharing its per tick count

    def __init__(
        self,
        name: str,
        digits: int,
        registers: Dict[str, RegisterSpec],
        instructions: Dict[str, Dict[str, int]],
        tick_limits: Dict[str, int] | None = None,
        tick_groups: Dict[str, str] | None = None
    ):
        self.name = name
        self.digits = digits
        self.registers = dict(registers)
        self.instructions = {op: dict(costs) for op, costs in instructions.items()}
        self.tick_limits = dict(tick_limits or {})
        self.tick_groups = dict(tick_groups or {})
        self.check()

    def check(self):
        if not 1 <= self.digits <= hw.MAXIMUM_DIGITS:
            raise ProfileError(f'{self.name}: unsupported number of digits {self.digits}')

        for op in self.instructions:
            if op not in ops.ALL or op == ops.LBL:
                raise ProfileError(f'{self.name}: unknown instruction {op}')

        for op, limit in self.tick_limits.items():
            if op not in self.instructions:
                raise ProfileError(f'{self.name}: per tick limit for unknown instruction {op}')

            if limit < 1:
                raise ProfileError(f'{self.name}: per tick limit of {op} must be positive')

        for op, group in self.tick_groups.items():
            if op not in self.instructions or group not in ops.ALL or group == ops.LBL:
                raise ProfileError(f'{self.name}: bad per tick group {op} -> {group}')

        for spec in self.registers.values():
            if spec.cls == RegisterClass.SEEKING:
                raise ProfileError(f'{self.name}: seeking register {spec.name} is not implemented')

            if spec.name not in spec.cls.letters():
                raise ProfileError(
                    f'{self.name}: {spec.name} is not a {spec.cls.value} register'
                )

            if not spec.is_storage():
                continue

            if spec.capacity < 1:
                raise ProfileError(f'{self.name}: storage {spec.name} has no capacity')

            index = self.registers.get(spec.index or '')

            if index is None or index.cls != RegisterClass.INDEX:
                raise ProfileError(
                    f'{self.name}: storage {spec.name} needs index register {spec.index}'
                )

    # - Lookups - #

    @property
    def immediate_bounds(self) -> tuple[int, int]:
        limit = hw.range_of_digits(self.digits)
        return (-limit, limit)

    def has_register(self, name: str) -> bool:
        return name in self.registers

    def supports(self, op: str) -> bool:
        return op in self.instructions

    def register_spec(self, name: str) -> RegisterSpec:
        try:
            return self.registers[name]
        except KeyError:
            raise ProfileError(f'{self.name}: no register {name}')

    def storage_indexed_by(self, index: str) -> list[RegisterSpec]:
        return [s for s in self.registers.values() if s.is_storage() and s.index == index]

    def timing_for(self, op: str, tier: str = BASE) -> int:
        costs = self.instructions.get(op)

        if costs is None:
            raise ProfileError(f'{self.name}: instruction {op} not supported')

        return costs.get(tier, costs.get(BASE, 0))

    def tick_limit(self, op: str) -> int | None:
        return self.tick_limits.get(op)

    def tick_group(self, op: str) -> str:
        return self.tick_groups.get(op, op)

    # - Validation - #

    def unsupported(self, instructions: Iterable[Instruction]) -> List[ParseError]:
        errors = []

        for instruction in instructions:
            if not self.supports(instruction.op):
                errors.append(ParseError(
                    instruction.line,
                    ErrorKind.UNSUPPORTED_ON_MACHINE,
                    f'"{instruction.op}" not supported on {self.name}'
                ))

            for name in dict.fromkeys(instruction.registers()):
                if not self.has_register(name):
                    errors.append(ParseError(
                        instruction.line,
                        ErrorKind.UNSUPPORTED_ON_MACHINE,
                        f'"{name}" register not supported on {self.name}'
                    ))

        return errors

    def validate(self, program: Program):
        errors = self.unsupported(program.instructions)

        if errors:
            raise AssemblyError(errors)

    # - Construction - #

    @classmethod
    def from_dict(cls, name: str, data: Dict[str, Any]) -> 'MachineProfile':
        name = data.get('name', name)
        digits = int(data.get('digits', hw.DEFAULT_DIGITS))

        registers = {
            reg_name: parse_register(reg_name, reg_data, digits)
            for reg_name, reg_data in data.get('registers', {}).items()
        }

        instructions = {
            op: parse_costs(op, costs)
            for op, costs in data.get('instructions', {}).items()
        }

        tick_limits, tick_groups = parse_per_tick(instructions, data.get('per_tick'))

        lg.debug(f'Profile {name}: {len(registers)} registers, {len(instructions)} instructions')
        return cls(name, digits, registers, instructions, tick_limits, tick_groups)

    def __repr__(self) -> str:
        return f'MachineProfile({self.name})'


def parse_register(name: str, data: Dict[str, Any], digits: int) -> RegisterSpec:
    try:
        reg_cls = RegisterClass(data['class'])
    except (KeyError, ValueError):
        raise ProfileError(f'Register {name}: bad or missing class')

    limit = hw.range_of_digits(int(data.get('digits', digits)))

    if reg_cls == RegisterClass.STORAGE:
        capacity = int(data.get('capacity', 0))
        index = data.get('index', hw.DEFAULT_INDEX.get(name))
    else:
        capacity = 1
        index = None

    block = data.get('block')

    if block is True:
        block = BlockRule()
    elif isinstance(block, dict):
        block = BlockRule(
            min_change=int(block.get('min_change', hw.BLOCK_MIN_CHANGE)),
            ticks=int(block.get('ticks', hw.BLOCK_TICKS))
        )
    else:
        block = None

    if block is not None and reg_cls != RegisterClass.STORAGE:
        raise ProfileError(f'Register {name}: only storage registers can block')

    return RegisterSpec(
        name=name,
        cls=reg_cls,
        capacity=capacity,
        minimum=-limit,
        maximum=limit,
        read_cost=int(data.get('read', 0)),
        write_cost=int(data.get('write', 0)),
        index=index,
        block=block
    )


def parse_costs(op: str, costs: int | Dict[str, int]) -> Dict[str, int]:
    if isinstance(costs, int):
        return {BASE: costs}

    for tier in costs:
        if tier not in TIERS:
            raise ProfileError(f'Instruction {op}: unknown cost tier {tier}')

    return {tier: int(value) for tier, value in costs.items()}


def parse_per_tick(
    instructions: Dict[str, Dict[str, int]],
    data: Dict[str, Any] | None
) -> tuple[Dict[str, int], Dict[str, str]]:
    ''' Without a per_tick table any number of instructions share a tick '''
    if data is None:
        return ({}, {})

    limit = int(data.get('limit', 1))
    unlimited = list(data.get('unlimited', []))

    for op in unlimited:
        if op not in instructions:
            raise ProfileError(f'Per tick: unknown unlimited instruction {op}')

    limits = {op: limit for op in instructions if op not in unlimited}
    groups = {op: str(group) for op, group in data.get('groups', {}).items()}
    return (limits, groups)


def load_profile(path: str | Path) -> MachineProfile:
    if isinstance(path, str):
        path = Path(path)

    lg.info(f'Loading machine profile {path}')
    data = tomllib.loads(path.read_text(encoding='utf-8'))
    return MachineProfile.from_dict(path.stem, data)


def builtin_profile(name: str) -> MachineProfile:
    path = PROFILES_DIR / f'{name}.toml'

    if not path.exists():
        raise ProfileError(f'No built-in machine {name}')

    return load_profile(path)
