# retro_z80_core/loader/assembler.py
"""
行単位のZ80ミニアセンブラ。

ニーモニックを機械語バイト列に変換し、各バイトを生成したソース行（0始まり）を記録します。
1パス、大文字小文字を区別しません。ラベルやディレクティブはありません。

対応する形式（実行エンジンが実装している命令のみ）:
    NOP / HALT / XOR A / INC A / DEC A / ADD A,B
    LD r,n   (r = B,C,D,E,H,L,A / n = 16進)
    JP nn    (nn = 16進, リトルエンディアンで出力)

空行・コメント行はバイトもアドレスも消費しません。解釈できない行も同様で、
エラーにはせず AssemblyDiagnostic として結果に残します。
"""
import logging
import string
from abc import ABC, abstractmethod
from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Tuple

from retro_z80_core.arch.z80.instructions.base import REGISTER_CODES

logger = logging.getLogger(__name__)

# LD r,n のオペコードは 00 rrr 110
LD_REGISTER_OPCODES: Dict[str, int] = {
    name: 0x06 | (code << 3) for code, name in REGISTER_CODES.items() if name != "(HL)"
}

# オペランドを取らない、または固定オペランドの形式
FIXED_FORMS: Dict[Tuple[str, Tuple[str, ...]], List[int]] = {
    ("NOP", ()): [0x00],
    ("HALT", ()): [0x76],
    ("XOR", ("A",)): [0xAF],
    ("INC", ("A",)): [0x3C],
    ("DEC", ("A",)): [0x3D],
    ("ADD", ("A", "B")): [0x80],
}

HEX_DIGITS = frozenset(string.hexdigits.upper())


# @intent:responsibility 読み飛ばされた行の情報を保持します。
@dataclass(frozen=True)
class AssemblyDiagnostic:
    line_index: int # 0始まり
    text: str # 元の行（コメント込み）
    reason: str


# @intent:responsibility アセンブル結果（プログラムイメージとアドレス→行の対応表）を不変に保持します。
@dataclass(frozen=True)
class AssemblyResult:
    """
    `data` はプログラムイメージ、`address_to_line` はアドレスからソース行への読み取り専用の対応表です。
    バイトを生成しなかった行は対応表に現れません。
    """
    data: Tuple[int, ...]
    address_to_line: Mapping[int, int]
    diagnostics: Tuple[AssemblyDiagnostic, ...] = ()
    origin: int = 0

    def line_for_address(self, address: int) -> Optional[int]:
        return self.address_to_line.get(address & 0xFFFF)


class AssemblyLineError(ValueError):
    """1行の解釈に失敗したことを表します。アセンブラの外には出ません。"""


# @intent:responsibility アセンブラの共通インターフェースを定義します。
class BaseAssembler(ABC):
    @abstractmethod
    def assemble(self, source: str, origin: int = 0) -> AssemblyResult:
        """
        アセンブリソースを行単位で解析し、アセンブル結果を返します。
        """

    # @intent:responsibility 1行をニーモニックとオペランドのリストに分解します。空行ならNoneを返します。
    # @intent:rationale オペランド欄の空白はカンマ分割の前に詰められます（"LD A 05" はオペランド "A05" になる）。
    def _parse_line(self, line: str) -> Optional[Tuple[str, List[str]]]:
        clean = line.split(';', 1)[0].strip().upper()
        if not clean:
            return None

        parts = clean.split()
        mnemonic = parts[0]
        operand_field = "".join(parts[1:])
        if not operand_field:
            return mnemonic, []
        return mnemonic, [op.strip() for op in operand_field.split(',')]

    def _parse_hex(self, val_str: str) -> int:
        digits = val_str
        if digits.startswith('$'):
            digits = digits[1:]
        elif digits.startswith('0X'):
            digits = digits[2:]
        elif len(digits) > 1 and digits.endswith('H'):
            digits = digits[:-1]
        if not digits or not set(digits) <= HEX_DIGITS:
            raise AssemblyLineError(f"invalid hex value {val_str!r}")
        return int(digits, 16)


# @intent:responsibility Z80用のアセンブラ実装。
class Z80Assembler(BaseAssembler):
    def assemble(self, source: str, origin: int = 0) -> AssemblyResult:
        program: List[int] = []
        address_to_line: Dict[int, int] = {}
        diagnostics: List[AssemblyDiagnostic] = []
        current = origin & 0xFFFF

        for line_index, line in enumerate(source.split('\n')):
            parsed = self._parse_line(line)
            if parsed is None:
                continue

            mnemonic, operands = parsed
            try:
                encoded = self._encode(mnemonic, operands)
            except AssemblyLineError as e:
                logger.warning("Line %d skipped (%s): %r", line_index + 1, e, line.strip())
                diagnostics.append(AssemblyDiagnostic(line_index=line_index, text=line, reason=str(e)))
                continue

            for i in range(len(encoded)):
                address_to_line[(current + i) & 0xFFFF] = line_index
            logger.debug("%04X: %s  <- line %d", current, " ".join(f"{b:02X}" for b in encoded), line_index + 1)
            program.extend(encoded)
            current = (current + len(encoded)) & 0xFFFF

        return AssemblyResult(
            data=tuple(program),
            address_to_line=MappingProxyType(address_to_line),
            diagnostics=tuple(diagnostics),
            origin=origin & 0xFFFF,
        )

    def _encode(self, mnemonic: str, operands: List[str]) -> List[int]:
        fixed = FIXED_FORMS.get((mnemonic, tuple(operands)))
        if fixed is not None:
            return list(fixed)

        if mnemonic == "LD":
            if len(operands) != 2 or operands[0] not in LD_REGISTER_OPCODES:
                raise AssemblyLineError("unsupported operands for LD")
            val = self._parse_hex(operands[1])
            return [LD_REGISTER_OPCODES[operands[0]], val & 0xFF]

        if mnemonic == "JP":
            if len(operands) != 1:
                raise AssemblyLineError("unsupported operands for JP")
            addr = self._parse_hex(operands[0])
            return [0xC3, addr & 0xFF, (addr >> 8) & 0xFF]

        if any(key[0] == mnemonic for key in FIXED_FORMS):
            raise AssemblyLineError(f"unsupported operands for {mnemonic}")
        raise AssemblyLineError(f"unknown mnemonic {mnemonic!r}")


def assemble(source: str, origin: int = 0) -> AssemblyResult:
    """
    ソーステキストをZ80機械語に変換します。同じ入力には常に同じ結果を返します。
    """
    return Z80Assembler().assemble(source, origin)
