"""
共通の型定義を提供するモジュール。
プロジェクト全体で使用されるレジスタ名の型やレジスタ幅の対応表などを定義します。
"""
from typing import FrozenSet, List, Literal, NamedTuple

# @intent:data_structure 書き込み可能なレジスタ名。設定ファイルやドライバからの文字列指定はこの名前に揃えます。
RegisterName = Literal[
    "a", "f", "b", "c", "d", "e", "h", "l",
    "pc", "sp", "ix", "iy",
    "i", "r",
    "iff1", "iff2",
    "im",
]

REGISTERS_8BIT: FrozenSet[str] = frozenset({"a", "f", "b", "c", "d", "e", "h", "l", "i", "r", "im"})
REGISTERS_16BIT: FrozenSet[str] = frozenset({"pc", "sp", "ix", "iy"})
REGISTERS_BOOL: FrozenSet[str] = frozenset({"iff1", "iff2"})

# @intent:data_structure 単一のレジスタの表示定義。インスペクタがレジスタの並びと幅を知るために使用される。
class RegisterInfo(NamedTuple):
    name: str
    width: int  # ビット幅 (1, 8 or 16)

# @intent:data_structure レジスタグループの表示定義。関連するレジスタ（例: "Main Registers"）をまとめる。
class RegisterLayoutInfo(NamedTuple):
    group_name: str
    registers: List[RegisterInfo]
