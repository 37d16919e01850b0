from pathlib import Path

import zrho.machine.profile as mp
import zrho.runtime.emulator as emulator
import zrho.zasm.asm as asm


def find_file(filename: str) -> Path:
    return Path(__file__).parent / filename


def load_file(filename: str) -> str:
    return asm.load_source(find_file(filename))


def start(source: str, machine: str = 'standard'):
    program = emulator.load_program(source, mp.builtin_profile(machine))
    return emulator.new_execution_state(program)


def start_file(filename: str, machine: str = 'standard'):
    program = asm.load_file(find_file(f'testdata/programs/{filename}'), mp.builtin_profile(machine))
    return emulator.new_execution_state(program)


def execute(source: str, machine: str = 'standard', max_steps: int = 1000):
    state = start(source, machine)
    emulator.run(state, max_steps)
    return state


def registers(state) -> dict:
    return emulator.snapshot(state)['registers']
