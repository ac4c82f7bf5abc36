"""
Z80 ALU (算術論理演算ユニット) およびフラグ操作ユーティリティ。

演算結果に基づいたフラグ（S, Z, H, P/V, N, C）の計算と更新を担当します。
未定義ビット（Y, X）には触れません。
"""
from retro_z80_core.arch.z80.state import Z80Registers

# @intent:responsibility 指定されたバイト値のパリティ（ビット1の数が偶数ならTrue）を計算します。
def calculate_parity(val: int) -> bool:
    """8ビット値のパリティ（偶数ならTrue）を計算します。"""
    val &= 0xFF
    val ^= val >> 4
    val ^= val >> 2
    val ^= val >> 1
    return (val & 1) == 0

# @intent:responsibility 8ビット加算の結果に基づいて全フラグを更新します。
def update_flags_add8(regs: Z80Registers, val1: int, val2: int, result: int) -> None:
    """
    ADD命令のフラグを更新します。`result` は切り詰める前の9ビットの和です。
    """
    res8 = result & 0xFF

    regs.flag_s = (res8 & 0x80) != 0
    regs.flag_z = res8 == 0
    regs.flag_h = ((val1 & 0x0F) + (val2 & 0x0F)) > 0x0F
    # Overflow: 同符号の加算で結果の符号が変わった場合
    regs.flag_pv = ((val1 ^ res8) & (val2 ^ res8) & 0x80) != 0
    regs.flag_n = False
    regs.flag_c = result > 0xFF

# @intent:responsibility 8ビット論理演算の結果に基づいてフラグを更新します。
def update_flags_logic8(regs: Z80Registers, result: int) -> None:
    """XOR系の論理演算命令のフラグを更新します。P/Vは偶数パリティです。"""
    res8 = result & 0xFF

    regs.flag_s = (res8 & 0x80) != 0
    regs.flag_z = res8 == 0
    regs.flag_h = False
    regs.flag_pv = calculate_parity(res8)
    regs.flag_n = False
    regs.flag_c = False

# @intent:responsibility インクリメント/デクリメント命令のフラグを更新します（Cフラグは変化しません）。
def update_flags_inc_dec8(regs: Z80Registers, val: int, result: int, is_inc: bool) -> None:
    res8 = result & 0xFF

    regs.flag_s = (res8 & 0x80) != 0
    regs.flag_z = res8 == 0

    if is_inc:
        regs.flag_h = (val & 0x0F) == 0x0F
        regs.flag_pv = val == 0x7F # 127 -> -128
        regs.flag_n = False
    else:
        regs.flag_h = (val & 0x0F) == 0x00
        regs.flag_pv = val == 0x80 # -128 -> 127
        regs.flag_n = True
