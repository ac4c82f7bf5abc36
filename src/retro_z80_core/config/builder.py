from typing import Optional, Tuple

from retro_z80_core.arch.z80.cpu import Z80Cpu
from retro_z80_core.debugger.debugger import Debugger
from .models import SessionConfig

# @intent:responsibility セッション構成（Config）に基づいて、CPUとドライバ（Debugger）を生成・接続し、初期状態を適用します。
class SystemBuilder:
    def build_system(self, config: Optional[SessionConfig] = None) -> Tuple[Z80Cpu, Debugger]:
        config = config or SessionConfig()
        cpu = Z80Cpu()
        debugger = Debugger(cpu, config)
        # 初期状態の適用
        debugger.reset()
        return cpu, debugger
