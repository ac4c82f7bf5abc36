# retro_z80_core/transport/bus.py
"""
Transport Layer (メモリ空間)

このモジュールは、64KBのアドレス空間全体を表すメモリと、
そこへの読み書きアクセスの記録を提供します。
アドレスは常に 0x10000 を法として折り返し、値は8bitにマスクされます。
"""
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List

ADDRESS_SPACE_SIZE = 0x10000
ADDRESS_MASK = 0xFFFF
BYTE_MASK = 0xFF

# @intent:responsibility バスアクセスを記録するためのタイプを定義します。
class BusAccessType(Enum):
    READ = "READ"
    WRITE = "WRITE"

# @intent:responsibility 個々のバスアクセス操作を記録します。
@dataclass(frozen=True) # 不変データ構造
class BusAccess:
    """
    メモリ上で行われた単一のアクセス（読み込みまたは書き込み）を記録するデータクラス。
    """
    address: int
    data: int # 8bit value
    access_type: BusAccessType

# @intent:responsibility 固定長64KBのアドレス空間を管理します。
# @intent:rationale アドレスの範囲外アクセスはエラーではなく折り返しとして扱います。
class Memory:
    """
    65536バイト固定のメモリ。サイズは生成後に変わりません。
    read/write はアクセスログに記録され、peek/poke/load は記録されません。
    """
    def __init__(self):
        self._memory = bytearray(ADDRESS_SPACE_SIZE)
        self._activity_log: List[BusAccess] = []

    def __len__(self) -> int:
        return ADDRESS_SPACE_SIZE

    def __getitem__(self, address: int) -> int:
        return self._memory[address & ADDRESS_MASK]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Memory):
            return NotImplemented
        return self._memory == other._memory

    def __repr__(self) -> str:
        used = sum(1 for b in self._memory if b)
        return f"Memory(size={ADDRESS_SPACE_SIZE:#x}, non_zero={used})"

    # @intent:responsibility バスアクセスをログに記録します。
    def _log_access(self, address: int, data: int, access_type: BusAccessType) -> None:
        self._activity_log.append(BusAccess(address=address, data=data, access_type=access_type))

    # @intent:responsibility 記録されたバスアクティビティログを取得し、クリアします。
    def get_and_clear_activity_log(self) -> List[BusAccess]:
        """
        現在のバスアクティビティログを返し、内部ログをクリアします。
        """
        log = self._activity_log
        self._activity_log = []
        return log

    def read(self, address: int) -> int:
        """
        指定されたアドレスから8bitのデータを読み出します。アクセスはログに記録されます。
        """
        address &= ADDRESS_MASK
        data = self._memory[address]
        self._log_access(address, data, BusAccessType.READ)
        return data

    # @intent:responsibility ログを記録せずに指定されたアドレスからデータを読み出します。
    def peek(self, address: int) -> int:
        """
        指定されたアドレスから8bitのデータを読み出します（ログ記録なし）。
        インスペクタや逆アセンブラ用。
        """
        return self._memory[address & ADDRESS_MASK]

    def write(self, address: int, data: int) -> None:
        """
        指定されたアドレスに `data & 0xFF` を書き込みます。アクセスはログに記録されます。
        """
        address &= ADDRESS_MASK
        data &= BYTE_MASK
        self._memory[address] = data
        self._log_access(address, data, BusAccessType.WRITE)

    # @intent:responsibility 外部からの編集用。ログを残さずに1バイト書き込みます。
    def poke(self, address: int, data: int) -> None:
        self._memory[address & ADDRESS_MASK] = data & BYTE_MASK

    # @intent:responsibility プログラムイメージを連続して書き込みます。アドレスは折り返します。
    def load(self, origin: int, data: Iterable[int]) -> int:
        """
        `origin` から順にバイト列を書き込み、書き込んだバイト数を返します。
        """
        count = 0
        for offset, value in enumerate(data):
            self._memory[(origin + offset) & ADDRESS_MASK] = value & BYTE_MASK
            count += 1
        return count

    def clear(self) -> None:
        """
        全領域を0で埋めます。
        """
        self._memory[:] = bytes(ADDRESS_SPACE_SIZE)

    def dump(self, start: int, length: int) -> bytes:
        """
        `start` から `length` バイトを折り返しつつ取り出します（ログ記録なし）。
        """
        return bytes(self._memory[(start + i) & ADDRESS_MASK] for i in range(length))

    def copy(self) -> "Memory":
        clone = Memory.__new__(Memory)
        clone._memory = bytearray(self._memory)
        clone._activity_log = []
        return clone
