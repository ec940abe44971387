from typing import Any, Dict, Optional


class CommandCache:
    """Last value sent per command key, used to skip redundant writes.

    Only valid for one session: the driver clears it on every connect and
    disconnect.
    """

    def __init__(self):
        self._values: Dict[str, Any] = {}

    def is_set(self, command: str, value: Any) -> bool:
        return command in self._values and self._values[command] == value

    def remember(self, command: str, value: Any) -> None:
        self._values[command] = value

    def get(self, command: str) -> Optional[Any]:
        return self._values.get(command)

    def clear(self) -> None:
        self._values.clear()

    def __contains__(self, command: object) -> bool:
        return command in self._values

    def __len__(self) -> int:
        return len(self._values)
