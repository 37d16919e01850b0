''' Line grammar '''

from dataclasses import dataclass
from typing import TypeAlias

import pyparsing as pp

from zrho.zasm.program import OPERATOR_ALIASES, Operator


@dataclass(frozen=True)
class RawComparison:
    left: str
    op: Operator
    right: str

    def __str__(self) -> str:
        return f'{self.left} {self.op} {self.right}'


RawArgument: TypeAlias = str | RawComparison


comment = pp.Regex(r';.*')

mnemonic = pp.Word(pp.printables, exclude_chars=';')

operator = pp.one_of(list(OPERATOR_ALIASES.keys()))
operator.set_parse_action(lambda r: OPERATOR_ALIASES[r[0]])

token = pp.Regex(r'[^\s;<>=!≥≤≠]+')

comparison = (token + operator + token).set_parse_action(
    lambda r: RawComparison(r[0], r[1], r[2])
)

argument = comparison | token

line = mnemonic('mnemonic') + pp.Group(pp.ZeroOrMore(argument))('arguments') + pp.StringEnd()
line.ignore(comment)


def is_blank(text: str) -> bool:
    stripped = text.strip()
    return stripped == '' or stripped.startswith(';')


def split_line(text: str) -> tuple[str, list[RawArgument]]:
    ''' Raises pp.ParseException on malformed operands '''
    result = line.parse_string(text, parse_all=True)
    return (result['mnemonic'], list(result['arguments']))
