class Fault(Exception):
    ''' Simulated program crash '''
    pass


class OutOfBoundsAccess(Fault):
    def __init__(self, register: str, index: int):
        super().__init__(f'{register}[{index}] is out of bounds')
        self.register = register
        self.index = index


class ValueOutOfRange(Fault):
    def __init__(self, register: str, value: int):
        super().__init__(f'"{value}" does not fit register {register}')
        self.register = register
        self.value = value


class DivisionByZero(Fault):
    def __init__(self, line: int):
        super().__init__(f'Division by zero on line {line}')
        self.line = line


class StepBudgetExceeded(Exception):
    ''' Engine safety stop, not a program fault '''

    def __init__(self, steps: int):
        super().__init__(f'Step budget of {steps} exhausted')
        self.steps = steps
