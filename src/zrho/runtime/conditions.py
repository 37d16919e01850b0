from zrho.runtime.registers import RegisterBank
from zrho.zasm.program import Condition, Immediate, Value


def resolve(value: Value, bank: RegisterBank) -> int:
    if isinstance(value, Immediate):
        return value.value

    return bank.read(value.name)


def evaluate(condition: Condition, bank: RegisterBank) -> bool:
    left = resolve(condition.left, bank)

    if condition.op is None or condition.right is None:
        return left != 0

    right = resolve(condition.right, bank)
    return condition.op.apply(left, right)
