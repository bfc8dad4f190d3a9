# ====== エラーコード ======
EC_CONFIG_INVALID = -3101
EC_CONFIG_IO = -3102
EC_CONFIG_UNKNOWN_KEY = -3103
EC_INPUT_COLUMNS = -3201
EC_INPUT_EMPTY = -3202
EC_PARTITION = -3301


class EngineError(Exception):
    """エラーコード付きの設定・入力エラー。"""

    def __init__(self, code: int, message: str):
        super().__init__(f"{code}: {message}")
        self.code = code
        self.message = message


__all__ = [
    "EngineError",
    "EC_CONFIG_INVALID",
    "EC_CONFIG_IO",
    "EC_CONFIG_UNKNOWN_KEY",
    "EC_INPUT_COLUMNS",
    "EC_INPUT_EMPTY",
    "EC_PARTITION",
]
