# Operand kinds used in signatures
REG = 'register'            # register that is read (and possibly written)
DST = 'destination'         # register that is only written
VAL = 'value'               # register or immediate
COND = 'condition'          # value or comparison
CONST = 'constant'          # immediate only
LABEL = 'label'             # label reference

# Data
SET = 'SET'  # V2 -> R1

# Arithmetic
ADD = 'ADD'  # V1 +  V2 -> R3
SUB = 'SUB'  # V1 -  V2 -> R3
NEG = 'NEG'  # -R1 -> R1
MUL = 'MUL'  # V1 *  V2 -> R3
DIV = 'DIV'  # V1 // V2 -> R3 (Euclidean)
REM = 'REM'  # V1 %  V2 -> R3 (Euclidean)
ODD = 'ODD'  # R1 mod 2 -> R1

# Comparison
CMP = 'CMP'  # C1 -> R2
TCP = 'TCP'  # if C1: 1 -> R2
FCP = 'FCP'  # if not C1: 0 -> R2

# Flow
LBL = 'LBL'  # define L1
JMP = 'JMP'  # if [C1] goto L2
LJP = 'LJP'  # if C1 goto L2, cheap when taken
UJP = 'UJP'  # if C1 goto L2, cheap when not taken
END = 'END'  # halt

# Timing
SLP = 'SLP'  # spend V1 ticks
TRY = 'TRY'  # spend read time of R1
TRW = 'TRW'  # spend write time of R1
CLK = 'CLK'  # ticks / 10^[U2] -> R1

# Operand kinds; optional operands are listed as (kind, None)
SIGNATURES: dict[str, tuple] = {
    SET: (DST, VAL),
    ADD: (VAL, VAL, DST),
    SUB: (VAL, VAL, DST),
    NEG: (REG,),
    MUL: (VAL, VAL, DST),
    DIV: (VAL, VAL, DST),
    REM: (VAL, VAL, DST),
    ODD: (REG,),
    CMP: (COND, DST),
    TCP: (COND, DST),
    FCP: (COND, DST),
    LBL: (LABEL,),
    JMP: ((COND, None), LABEL),
    LJP: (COND, LABEL),
    UJP: (COND, LABEL),
    SLP: (VAL,),
    TRY: (REG,),
    TRW: (DST,),
    CLK: (DST, (CONST, None)),
    END: (),
}

ALL = frozenset(SIGNATURES.keys())

# Complementary pairs sharing the divider
PAIRED = {
    DIV: REM,
    REM: DIV,
}


def is_optional(kind) -> bool:
    return isinstance(kind, tuple)


def required_kind(kind) -> str:
    return kind[0] if is_optional(kind) else kind


def arity(op: str) -> tuple[int, int]:
    ''' Minimal and maximal number of operands '''
    signature = SIGNATURES[op]
    minimum = len([k for k in signature if not is_optional(k)])
    return (minimum, len(signature))
