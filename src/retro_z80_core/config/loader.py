import yaml
from typing import Any, Dict

from retro_z80_core.common.types import REGISTERS_8BIT, REGISTERS_16BIT, REGISTERS_BOOL
from .models import CpuInitialState, SessionConfig, UnimplementedPolicy

KNOWN_REGISTERS = REGISTERS_8BIT | REGISTERS_16BIT | REGISTERS_BOOL


class ConfigError(ValueError):
    """設定ファイルの内容が不正な場合に送出されます。"""


# @intent:responsibility YAML形式のセッション設定を読み込み、SessionConfigに変換します。
class ConfigLoader:
    def load_from_file(self, path: str) -> SessionConfig:
        with open(path, 'r') as f:
            data = yaml.safe_load(f)
        return self._parse_config(data or {})

    def load_from_string(self, text: str) -> SessionConfig:
        return self._parse_config(yaml.safe_load(text) or {})

    def _parse_config(self, data: Dict[str, Any]) -> SessionConfig:
        if not isinstance(data, dict):
            raise ConfigError("Top-level configuration must be a mapping")

        policy_name = str(data.get("on_unimplemented", UnimplementedPolicy.CONTINUE.value)).lower()
        try:
            policy = UnimplementedPolicy(policy_name)
        except ValueError:
            raise ConfigError(f"Invalid on_unimplemented policy: {policy_name!r}") from None

        steps_per_tick = self._parse_int(data.get("steps_per_tick", 50))
        if steps_per_tick <= 0:
            raise ConfigError("steps_per_tick must be positive")
        history_limit = self._parse_int(data.get("history_limit", 64))
        if history_limit < 0:
            raise ConfigError("history_limit must not be negative")

        # Parse Initial State
        initial_state_data = data.get("initial_state") or {}
        if not isinstance(initial_state_data, dict):
            raise ConfigError("initial_state must be a mapping")
        registers_data = initial_state_data.get("registers") or {}
        if not isinstance(registers_data, dict):
            raise ConfigError("initial_state.registers must be a mapping")
        registers = {}
        for name, value in registers_data.items():
            reg_name = str(name).lower()
            if reg_name not in KNOWN_REGISTERS:
                raise ConfigError(f"Unknown register in initial_state: {name!r}")
            registers[reg_name] = value if isinstance(value, bool) else self._parse_int(value)

        initial_state = CpuInitialState(
            pc=self._parse_int(initial_state_data.get("pc", 0)),
            sp=self._parse_int(initial_state_data.get("sp", 0xFFFF)),
            registers=registers,
        )

        return SessionConfig(
            origin=self._parse_int(data.get("origin", 0)),
            steps_per_tick=steps_per_tick,
            history_limit=history_limit,
            on_unimplemented=policy,
            initial_state=initial_state,
        )

    def _parse_int(self, value: Any) -> int:
        if isinstance(value, bool):
            raise ConfigError(f"Invalid integer format: {value}")
        if isinstance(value, int):
            return value
        if isinstance(value, str):
            try:
                if value.lower().startswith("0x"):
                    return int(value, 16)
                return int(value)
            except ValueError:
                pass
        raise ConfigError(f"Invalid integer format: {value}")
