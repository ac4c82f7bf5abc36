# retro_z80_core/core/state.py
"""
Core Layer (CPU状態)

このモジュールは、CPUの基本的な状態（メモリ、HALT状態、累計サイクル数）を保持するデータ構造を定義します。
"""
from dataclasses import dataclass, field

from retro_z80_core.transport.bus import Memory

# @intent:responsibility CPUのアーキテクチャ非依存の状態を保持します。レジスタ群はアーキテクチャ固有の状態で追加されます。
@dataclass
class CpuState:
    """
    CPUの状態を保持するデータクラス。
    これは抽象的な基底状態であり、特定のCPUアーキテクチャに応じて拡張されます。
    """
    memory: Memory = field(default_factory=Memory)
    halted: bool = False
    cycles: int = 0  # 単調非減少

    # @intent:responsibility 独立したコピーを返します。以後の変更はコピーに影響しません。
    def copy(self) -> "CpuState":
        return CpuState(memory=self.memory.copy(), halted=self.halted, cycles=self.cycles)
