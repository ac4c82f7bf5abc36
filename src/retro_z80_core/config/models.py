from dataclasses import dataclass, field
from enum import Enum
from typing import Dict


# @intent:responsibility 未実装オペコードに遭遇したときのドライバの振る舞いを定義します。
class UnimplementedPolicy(Enum):
    CONTINUE = "continue"  # 記録だけして実行を続ける
    STOP = "stop"          # run() のバッチを終了する
    RAISE = "raise"        # UnimplementedOpcodeError を送出する


@dataclass
class CpuInitialState:
    pc: int = 0x0000
    sp: int = 0xFFFF
    registers: Dict[str, int] = field(default_factory=dict)


@dataclass
class SessionConfig:
    origin: int = 0x0000
    steps_per_tick: int = 50
    history_limit: int = 64
    on_unimplemented: UnimplementedPolicy = UnimplementedPolicy.CONTINUE
    initial_state: CpuInitialState = field(default_factory=CpuInitialState)
