import logging as lg
import re
from pathlib import Path
from typing import Dict, List

import pyparsing as pp

import zrho.common.hwconf as hw
import zrho.common.ops as ops
from zrho.machine.profile import MachineProfile
from zrho.zasm.errors import AssemblyError, ErrorKind, ParseError
from zrho.zasm.grammar import RawArgument, RawComparison, is_blank, split_line
from zrho.zasm.program import (
    Condition, Immediate, Instruction, Label, Operand, Program, Register, Value
)


REGISTER_LETTERS = hw.GENERAL_REGISTERS + hw.INDEX_REGISTERS + hw.STORAGE_REGISTERS

INTEGER = re.compile(r'[+-]?[0-9]+')
LABEL_NAME = re.compile(r'[A-Za-z0-9_-]+')


class LineError(Exception):
    kind: ErrorKind

    def __init__(self, kind: ErrorKind, message: str):
        super().__init__(message)
        self.kind = kind


class FirstPass:
    ''' Tokenizes lines, checks operands, collects labels '''
    instructions: List[Instruction]
    label_dict: Dict[str, int]
    errors: List[ParseError]

    def __init__(self, immediate_bounds: tuple[int, int]):
        self.instructions = list()
        self.label_dict = dict()
        self.label_lines: Dict[str, int] = dict()
        self.errors = list()
        self.minimum, self.maximum = immediate_bounds

    def error(self, line_no: int, kind: ErrorKind, message: str):
        lg.debug(f'Line {line_no}: {message}')
        self.errors.append(ParseError(line_no, kind, message))

    def process(self, source: str):
        for line_no, text in enumerate(source.splitlines(), start=1):
            if is_blank(text):
                continue

            try:
                self.on_line(line_no, text)
            except LineError as e:
                self.error(line_no, e.kind, str(e))

        # Labels must bind to a following instruction
        for name, index in self.label_dict.items():
            if index >= len(self.instructions):
                self.error(
                    self.label_lines[name],
                    ErrorKind.INVALID_OPERAND_TYPE,
                    f'Label "{name}" is not followed by an instruction'
                )

    def on_line(self, line_no: int, text: str):
        op = text.split(';', 1)[0].split()[0]

        if op not in ops.ALL:
            raise LineError(ErrorKind.UNKNOWN_INSTRUCTION, f'No such operation "{op}"')

        try:
            _, arguments = split_line(text)
        except pp.ParseException:
            raise LineError(ErrorKind.INVALID_OPERAND_TYPE, f'Malformed operands "{text.strip()}"')

        operands = self.on_arguments(op, arguments)

        if op == ops.LBL:
            self.on_label(line_no, operands[0])
        else:
            self.instructions.append(Instruction(op, operands, line_no))

    def on_label(self, line_no: int, label: Label):
        if label.name in self.label_dict:
            raise LineError(
                ErrorKind.DUPLICATE_LABEL,
                f'Label "{label.name}" already defined on line {self.label_lines[label.name]}'
            )

        index = len(self.instructions)
        self.label_dict[label.name] = index
        self.label_lines[label.name] = line_no
        lg.debug(f'Label {label.name} @ {index}')

    def on_arguments(self, op: str, arguments: List[RawArgument]) -> tuple:
        signature = ops.SIGNATURES[op]
        minimum, maximum = ops.arity(op)

        if not minimum <= len(arguments) <= maximum:
            expected = f'{minimum}' if minimum == maximum else f'{minimum} to {maximum}'
            raise LineError(
                ErrorKind.ARITY_MISMATCH,
                f'{op} takes {expected} operands, got {len(arguments)}'
            )

        # Leading optional operands are dropped first
        operands: List[Operand | None] = []
        pending = list(arguments)
        skipped = 0

        for kind in signature:
            if ops.is_optional(kind) and maximum > skipped + len(arguments):
                skipped += 1
                operands.append(None)
                continue

            operands.append(self.on_operand(ops.required_kind(kind), pending.pop(0)))

        return tuple(operands)

    # - Operands - #

    def on_operand(self, kind: str, argument: RawArgument) -> Operand:
        if kind == ops.COND:
            return self.on_condition(argument)

        if isinstance(argument, RawComparison):
            raise LineError(ErrorKind.INVALID_OPERAND_TYPE, f'Unexpected comparison "{argument}"')

        if kind in (ops.REG, ops.DST):
            return self.on_register(argument)

        if kind == ops.VAL:
            return self.on_value(argument)

        if kind == ops.CONST:
            return self.on_constant(argument)

        return self.on_label_ref(argument)

    def on_condition(self, argument: RawArgument) -> Condition:
        if isinstance(argument, RawComparison):
            return Condition(
                self.on_value(argument.left),
                argument.op,
                self.on_value(argument.right)
            )

        return Condition(self.on_value(argument))

    def on_value(self, token: str) -> Value:
        if INTEGER.fullmatch(token):
            return self.on_constant(token)

        return self.on_register(token)

    def on_register(self, token: str) -> Register:
        if len(token) != 1 or token not in REGISTER_LETTERS:
            raise LineError(ErrorKind.INVALID_OPERAND_TYPE, f'Got "{token}", expected a register')

        return Register(token)

    def on_constant(self, token: str) -> Immediate:
        if not INTEGER.fullmatch(token):
            raise LineError(ErrorKind.INVALID_OPERAND_TYPE, f'Got "{token}", expected a constant')

        value = int(token)

        if not self.minimum <= value <= self.maximum:
            raise LineError(
                ErrorKind.CONSTANT_OUT_OF_RANGE,
                f'"{token}" does not fit this machine ({self.minimum} to {self.maximum})'
            )

        return Immediate(value)

    def on_label_ref(self, token: str) -> Label:
        if not LABEL_NAME.fullmatch(token):
            raise LineError(
                ErrorKind.INVALID_OPERAND_TYPE,
                f'Invalid label "{token}", must contain only _, -, letters, and numbers'
            )

        return Label(token)


def resolve_labels(first_pass: FirstPass):
    ''' Second pass '''
    for instruction in first_pass.instructions:
        for operand in instruction.operands:
            if isinstance(operand, Label) and operand.name not in first_pass.label_dict:
                first_pass.error(
                    instruction.line,
                    ErrorKind.UNDEFINED_LABEL,
                    f'No such label "{operand.name}"'
                )


def run_passes(source: str, profile: MachineProfile | None) -> FirstPass:
    if profile is not None:
        bounds = profile.immediate_bounds
    else:
        limit = hw.range_of_digits(hw.DEFAULT_DIGITS)
        bounds = (-limit, limit)

    first_pass = FirstPass(bounds)
    first_pass.process(source)
    resolve_labels(first_pass)
    return first_pass


def build(first_pass: FirstPass, profile: MachineProfile | None, name: str) -> Program:
    return Program(
        instructions=tuple(first_pass.instructions),
        labels=dict(first_pass.label_dict),
        name=name,
        profile=profile
    )


def parse(source: str, profile: MachineProfile | None = None, name: str = '') -> Program:
    first_pass = run_passes(source, profile)

    if first_pass.errors:
        raise AssemblyError(first_pass.errors)

    return build(first_pass, profile, name)


def load_program(source: str, profile: MachineProfile, name: str = '') -> Program:
    lg.info(f'Assembling {name or "<program>"} for {profile.name}')
    first_pass = run_passes(source, profile)

    # Well formed lines are checked against the machine even when others are not
    errors = first_pass.errors + profile.unsupported(first_pass.instructions)

    if errors:
        raise AssemblyError(errors)

    program = build(first_pass, profile, name)
    lg.debug(f'{len(program)} instructions, {len(program.labels)} labels')
    return program


def load_source(path: str | Path) -> str:
    if isinstance(path, str):
        path = Path(path)

    if path.suffix not in hw.SOURCE_SUFFIXES:
        raise ValueError(f'Unrecognised program file {path.name}')

    lg.debug(f'Collecting file {path}')
    return path.read_text(encoding='utf-8')


def load_file(path: str | Path, profile: MachineProfile) -> Program:
    path = Path(path)
    return load_program(load_source(path), profile, path.stem)
