"""
Z80 命令マッピング定義。
各命令モジュールから関数をインポートし、オペコードと関数の対応表を構築します。
表にないオペコードは未実装として扱われます。
"""
from .alu import (
    decode_add_a_r, decode_inc_dec8, decode_xor_r,
    execute_add_a_r, execute_inc_dec8, execute_xor_r
)
from .load import decode_ld_r_n, execute_ld_r_n
from .control import (
    decode_00, decode_18, decode_76, decode_c3,
    execute_00, execute_18, execute_76, execute_c3
)

# LD B/C/D/E/H/L/A,n (0x36 = LD (HL),n は対象外)
LD_R_N_OPCODES = [op for op in range(0x06, 0x40, 0x08) if op != 0x36]

DECODE_MAP = {
    0x00: decode_00,
    0x18: decode_18,
    0x3C: decode_inc_dec8, # INC A
    0x3D: decode_inc_dec8, # DEC A
    0x76: decode_76,
    0x80: decode_add_a_r, # ADD A,B
    0xAF: decode_xor_r, # XOR A
    0xC3: decode_c3,
    **{op: decode_ld_r_n for op in LD_R_N_OPCODES},
}

EXECUTE_MAP = {
    0x00: execute_00,
    0x18: execute_18,
    0x3C: execute_inc_dec8,
    0x3D: execute_inc_dec8,
    0x76: execute_76,
    0x80: execute_add_a_r,
    0xAF: execute_xor_r,
    0xC3: execute_c3,
    **{op: execute_ld_r_n for op in LD_R_N_OPCODES},
}
