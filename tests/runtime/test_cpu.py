import pytest

import zrho.runtime.emulator as emulator
from zrho.runtime.cpu import div_euclid, rem_euclid

import unit_utils


def ticks_of(source: str) -> int:
    return emulator.snapshot(unit_utils.execute(source))['elapsed_ticks']


def test_arithmetic():
    state = unit_utils.execute(
        'SET X 7\n'
        'ADD X 5 Y\n'
        'SUB X 10 Z\n'
        'MUL X -3 W\n'
        'NEG X\n'
        'END\n'
    )

    regs = unit_utils.registers(state)
    assert (regs['X'], regs['Y'], regs['Z'], regs['W']) == (-7, 12, -3, -21)


@pytest.mark.parametrize('a,b,q,r', [
    (7, 2, 3, 1),
    (-7, 2, -4, 1),
    (7, -2, -3, 1),
    (-7, -2, 4, 1),
    (-6, 3, -2, 0),
    (0, -5, 0, 0),
])
def test_euclidean_division(a, b, q, r):
    assert (div_euclid(a, b), rem_euclid(a, b)) == (q, r)
    assert q * b + r == a

    state = unit_utils.execute(f'SET X {a}\nDIV X {b} Y\nREM X {b} Z\nEND\n')
    regs = unit_utils.registers(state)
    assert (regs['Y'], regs['Z']) == (q, r)


def test_odd():
    state = unit_utils.execute('SET X -3\nODD X\nSET Y 4\nODD Y\nEND\n')
    regs = unit_utils.registers(state)

    assert (regs['X'], regs['Y']) == (1, 0)


def test_comparisons():
    state = unit_utils.execute(
        'SET X 5\n'
        'SET Z 7\n'
        'SET W 7\n'
        'CMP X > 3 Y\n'
        'FCP X > 3 Z\n'
        'FCP X < 3 W\n'
        'END\n'
    )

    regs = unit_utils.registers(state)
    assert (regs['Y'], regs['Z'], regs['W']) == (1, 7, 0)

    state = unit_utils.execute('SET Y 7\nTCP 0 Y\nTCP X = 0 Z\nCMP X Y\nEND\n')
    regs = unit_utils.registers(state)
    assert (regs['Y'], regs['Z']) == (0, 1)


def test_storage_program():
    state = unit_utils.execute(
        'SET I 4\n'
        'SET D 11\n'
        'ADD I 1 I\n'
        'ADD D 3 D\n'
        'END\n'
    )

    assert unit_utils.registers(state)['D'][4:6] == [11, 3]


def test_register_costs():
    # SET I: 1, SET D: 1 + write 1, ADD D D D: read 1 once + 1 + write 1
    assert ticks_of('SET I 1\nSET D 5\nADD D D D\nEND\n') == 6


def test_read_costs_overlap():
    # D and H both take 1 tick to read, reading both still takes 1
    assert ticks_of('SET I 1\nSET M 1\nADD D H X\nEND\n') == 1 + 1 + 2
    assert ticks_of('SET I 1\nSET M 1\nCMP D = H X\nEND\n') == 1 + 1 + 2


@pytest.mark.parametrize('jump,ticks,pc', [
    ('JMP B', 1, 2),
    ('JMP 0 B', 0, 1),
    ('JMP 1 = 1 B', 1, 2),
    ('LJP 1 B', 0, 2),
    ('LJP 0 B', 5, 1),
    ('UJP 1 B', 5, 2),
    ('UJP 0 B', 0, 1),
])
def test_jump_costs(jump, ticks, pc):
    state = unit_utils.execute(f'{jump}\nEND\nLBL B\nEND\n')
    snap = emulator.snapshot(state)

    assert snap['elapsed_ticks'] == ticks
    assert snap['pc'] == pc
    assert snap['halted']


@pytest.mark.parametrize('source,ticks', [
    ('SET X 17\nDIV X 5 Y\nREM X 5 Z\nEND\n', 1 + 4 + 1),
    ('SET X 17\nREM X 5 Z\nDIV X 5 Y\nEND\n', 1 + 4 + 1),
    ('SET X 17\nDIV X 5 Y\nREM X 5 Z\nREM X 5 W\nEND\n', 1 + 4 + 1 + 4),
    ('SET X 17\nDIV X 5 Y\nREM X 5 Z\nDIV X 5 W\nEND\n', 1 + 4 + 1 + 4),
    ('SET X 17\nDIV X 5 Y\nDIV X 5 Z\nEND\n', 1 + 4 + 4),
    ('SET X 17\nDIV X 5 Y\nREM X 4 Z\nEND\n', 1 + 4 + 4),
    ('SET X 17\nDIV X 5 X\nREM X 5 Z\nEND\n', 1 + 4 + 4),
    ('SET X 17\nDIV X 5 Y\nSET W 0\nREM X 5 Z\nEND\n', 1 + 4 + 1 + 4),
    ('SET X 17\nSET Y 5\nDIV X 5 W\nREM X Y Z\nEND\n', 1 + 1 + 4 + 4),
])
def test_divider_pairing(source, ticks):
    assert ticks_of(source) == ticks


def test_clock():
    state = unit_utils.execute('SLP 25\nCLK X\nSLP 9\nCLK Y 1\nSLP 1\nCLK Z 2\nEND\n')
    regs = unit_utils.registers(state)

    assert (regs['X'], regs['Y'], regs['Z']) == (25, 3, 0)


def test_clock_once_per_tick():
    # Every CLK after the first one waits for the next tick
    state = unit_utils.execute('SLP 25\nCLK X\nCLK Y\nCLK Z 1\nCLK W 0\nEND\n')
    regs = unit_utils.registers(state)

    assert (regs['X'], regs['Y'], regs['Z'], regs['W']) == (25, 26, 2, 28)


def test_sleep():
    assert ticks_of('SLP 12\nEND\n') == 12
    assert ticks_of('SLP -5\nEND\n') == 0
    assert ticks_of('SET X 7\nSLP X\nEND\n') == 1 + 7


def test_try():
    # TRY spends the read time, TRW the write time, neither touches the value
    state = unit_utils.execute('SET I 1\nTRY D\nTRW D\nEND\n')

    assert emulator.snapshot(state)['elapsed_ticks'] == 1 + 1 + 1
    assert unit_utils.registers(state)['D'][1] == 0


@pytest.mark.parametrize('source,ticks', [
    # No block: index moves by one
    ('SET M 1\nSET H 7\nEND\n', 1 + 2),
    ('SET M 1\nSET M 2\nSET M 1\nSET H 7\nEND\n', 3 + 2),
    # Block set at tick 0, lifts at 16
    ('SET M 5\nSET H 7\nEND\n', 16 + 2),
    ('SET M 9\nTRY H\nEND\n', 16 + 1),
    ('SET M 9\nTRW H\nEND\n', 16 + 1),
    # Block counts from the tick of the index write
    ('SLP 10\nSET M 5\nSET H 7\nEND\n', 26 + 2),
    # Expired block
    ('SET M 5\nSLP 20\nSET H 7\nEND\n', 21 + 2),
    ('SET M 5\nSLP 15\nSET H 7\nEND\n', 16 + 2),
    # A second large move restarts the block
    ('SET M -2\nSET M 0\nSET X H\nEND\n', 17 + 2),
    # D has no block rule
    ('SET I 50\nSET D 7\nEND\n', 1 + 2),
])
def test_blocking(source, ticks):
    assert ticks_of(source) == ticks


def test_block_visible_to_clock():
    state = unit_utils.execute('SET M 9\nTRY H\nCLK X\nEND\n')
    assert unit_utils.registers(state)['X'] == 17


@pytest.mark.parametrize('source,ticks', [
    ('NEG X\nEND\n', 0),
    ('NEG X\nNEG X\nEND\n', 1),
    ('NEG X\nNEG Y\nNEG X\nEND\n', 2),
    # Jumps share one group
    ('LJP 1 A\nLBL A\nUJP 0 B\nLBL B\nEND\n', 1),
    ('JMP 0 A\nLBL A\nLJP 1 B\nLBL B\nEND\n', 1),
    # Different groups share a tick
    ('NEG X\nJMP 0 A\nLBL A\nCLK Y\nEND\n', 0),
    # Some instructions are never held back
    ('SLP 0\nSLP 0\nTRY X\nTRY X\nTRW X\nTRW X\nEND\n', 0),
    # A tick spent by an instruction opens a new one
    ('NEG X\nSET Y 1\nNEG X\nEND\n', 1),
])
def test_per_tick_limit(source, ticks):
    assert ticks_of(source) == ticks


def test_per_tick_limit_in_clock():
    state = unit_utils.execute('NEG X\nNEG X\nCLK Y\nEND\n')
    assert unit_utils.registers(state)['Y'] == 1
