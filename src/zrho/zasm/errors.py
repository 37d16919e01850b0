from dataclasses import dataclass
from enum import Enum


class ErrorKind(Enum):
    UNKNOWN_INSTRUCTION = 'UnknownInstruction'
    ARITY_MISMATCH = 'ArityMismatch'
    INVALID_OPERAND_TYPE = 'InvalidOperandType'
    CONSTANT_OUT_OF_RANGE = 'ConstantOutOfRange'
    UNDEFINED_LABEL = 'UndefinedLabel'
    DUPLICATE_LABEL = 'DuplicateLabel'
    UNSUPPORTED_ON_MACHINE = 'UnsupportedOnMachine'


@dataclass(frozen=True)
class ParseError:
    line: int       # 1-based source line
    kind: ErrorKind
    message: str

    def __str__(self) -> str:
        return f'Line {self.line}: {self.kind.value}: {self.message}'


class AssemblyError(Exception):
    ''' Carries every problem found in a source text '''
    errors: list[ParseError]

    def __init__(self, errors: list[ParseError]):
        self.errors = sorted(errors, key=lambda e: e.line)
        super().__init__('\n'.join(str(e) for e in self.errors))

    def kinds(self) -> list[ErrorKind]:
        return [e.kind for e in self.errors]
