from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Iterator, Mapping, TypeAlias

import zrho.common.ops as ops

if TYPE_CHECKING:
    from zrho.machine.profile import MachineProfile


class Operator(Enum):
    GT = '>'
    LT = '<'
    EQ = '='
    GE = '>='
    LE = '<='
    NE = '!='

    def apply(self, left: int, right: int) -> bool:
        match self:
            case Operator.GT:
                return left > right
            case Operator.LT:
                return left < right
            case Operator.EQ:
                return left == right
            case Operator.GE:
                return left >= right
            case Operator.LE:
                return left <= right
            case Operator.NE:
                return left != right

    def __str__(self) -> str:
        return self.value


# Every accepted spelling -> canonical operator
OPERATOR_ALIASES = {
    '>': Operator.GT,
    '<': Operator.LT,
    '=': Operator.EQ,
    '>=': Operator.GE,
    '≥': Operator.GE,
    '<=': Operator.LE,
    '≤': Operator.LE,
    '!=': Operator.NE,
    '≠': Operator.NE,
    '<>': Operator.NE,
}


@dataclass(frozen=True)
class Register:
    name: str

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class Immediate:
    value: int

    def __str__(self) -> str:
        return str(self.value)


Value: TypeAlias = Register | Immediate


@dataclass(frozen=True)
class Condition:
    left: Value
    op: Operator | None = None
    right: Value | None = None

    def values(self) -> tuple[Value, ...]:
        if self.right is None:
            return (self.left,)

        return (self.left, self.right)

    def __str__(self) -> str:
        if self.op is None:
            return str(self.left)

        return f'{self.left} {self.op} {self.right}'


@dataclass(frozen=True)
class Label:
    name: str

    def __str__(self) -> str:
        return self.name


Operand: TypeAlias = Register | Immediate | Condition | Label


@dataclass(frozen=True)
class Instruction:
    op: str
    # Aligned with ops.SIGNATURES; an omitted optional operand is None
    operands: tuple[Operand | None, ...]
    line: int = field(default=0, compare=False)

    def operand_kinds(self) -> Iterator[tuple[str, Operand]]:
        for kind, operand in zip(ops.SIGNATURES[self.op], self.operands):
            if operand is not None:
                yield (ops.required_kind(kind), operand)

    def registers(self) -> list[str]:
        ''' Every register mentioned by the instruction '''
        names = []

        for _, operand in self.operand_kinds():
            if isinstance(operand, Register):
                names.append(operand.name)

            if isinstance(operand, Condition):
                names.extend(v.name for v in operand.values() if isinstance(v, Register))

        return names

    def read_registers(self) -> list[str]:
        ''' Distinct registers whose value the instruction reads, in order '''
        names: list[str] = []

        for kind, operand in self.operand_kinds():
            if kind in (ops.DST, ops.LABEL):
                continue

            # TRY only spends time, the value is never fetched
            if self.op == ops.TRY:
                continue

            if isinstance(operand, Register):
                candidates = [operand]
            elif isinstance(operand, Condition):
                candidates = [v for v in operand.values() if isinstance(v, Register)]
            else:
                candidates = []

            for register in candidates:
                if register.name not in names:
                    names.append(register.name)

        return names

    def __str__(self) -> str:
        parts = [self.op] + [str(o) for o in self.operands if o is not None]
        return ' '.join(parts)


@dataclass(frozen=True)
class Program:
    instructions: tuple[Instruction, ...]
    labels: Mapping[str, int]
    name: str = field(default='', compare=False)
    # MachineProfile the program was validated against
    profile: 'MachineProfile | None' = field(default=None, compare=False, repr=False)

    def __len__(self) -> int:
        return len(self.instructions)

    def target(self, label: Label) -> int:
        return self.labels[label.name]

    def dump(self) -> str:
        ''' Canonical source text '''
        by_index: dict[int, list[str]] = {}

        for name, index in self.labels.items():
            by_index.setdefault(index, []).append(name)

        lines = []

        for index, instruction in enumerate(self.instructions):
            for name in by_index.get(index, []):
                lines.append(f'{ops.LBL} {name}')

            lines.append(str(instruction))

        return '\n'.join(lines) + '\n'
