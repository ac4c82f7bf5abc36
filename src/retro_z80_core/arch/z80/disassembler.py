"""
Z80逆アセンブラモジュール。

メモリ上のバイナリデータを解析し、Z80アセンブリ言語のニーモニック形式に変換します。
命令表にないバイトは "DB $xx" として1バイトずつ出力します。
"""
from typing import List, Tuple

from retro_z80_core.transport.bus import Memory
from retro_z80_core.arch.z80.instructions import decode_opcode, is_implemented


class _PeekReader:
    # デコーダのオペランド読み込みをアクセスログに残さないためのラッパー
    def __init__(self, memory: Memory):
        self._memory = memory

    def read(self, address: int) -> int:
        return self._memory.peek(address)


# @intent:responsibility 指定されたメモリ範囲のバイナリデータを解析し、アドレスとニーモニックのリストを返します。
def disassemble(memory: Memory, start_addr: int, length: int) -> List[Tuple[int, str, str]]:
    """
    メモリ上のデータを読み取り、(アドレス, 16進ダンプ, ニーモニック) のタプルのリストを返します。
    アドレスは 0x10000 で折り返します。`length` はバイト数です。
    """
    reader = _PeekReader(memory)
    result = []
    offset = 0

    while offset < length:
        addr = (start_addr + offset) & 0xFFFF
        opcode = memory.peek(addr)

        if not is_implemented(opcode):
            result.append((addr, f"{opcode:02X}", f"DB ${opcode:02X}"))
            offset += 1
            continue

        operation = decode_opcode(opcode, reader, addr)
        hex_dump = " ".join(f"{b:02X}" for b in (opcode, *operation.operand_bytes))
        result.append((addr, hex_dump, operation.text()))
        offset += operation.length

    return result
