"""Module containing custom exceptions."""


class CustomError(Exception):
    """Custom alphaPI error class."""

    _error_code = ""
    _msg = ""
    _detail_msg = ""
    _user_msg = ""

    @property
    def error_code(self):
        return self._error_code

    @property
    def msg(self):
        return self._msg

    @property
    def detail_msg(self):
        return self._detail_msg

    def __init__(self, msg: str = ""):
        self._user_msg = msg

        super().__init__(self._msg)

    def __str__(self):
        return (
            f"{self._error_code}: {self._msg}\n'{self._user_msg}'\n{self._detail_msg}"
        )


class BusinessError(CustomError):
    """Custom error class for 'business' errors.

    A 'business' error is an error that is caused during processing the input (data, configuration, ...) and not by a
    malfunction in alphaPI.
    """


class NoProteinsError(BusinessError):
    """Raise when the identification store does not contain any protein."""

    _error_code = "NO_PROTEINS"

    _msg = "No protein identifications available, can't run protein inference."


class InvariantViolationError(CustomError):
    """Raise when an internal invariant of the inference engine is violated.

    This is not caused by the input but by a malfunction in alphaPI, e.g. a probability table that contains NaN.
    """

    _error_code = "INVARIANT_VIOLATION"

    _msg = "Internal invariant of the inference engine violated."


class ConfigError(BusinessError):
    """Raise when something is wrong with the provided configuration."""

    _error_code = "CONFIG_ERROR"

    _msg = "Malformed or invalid configuration."
    _key = ""
    _config_name = ""
    _detail_msg = ""

    def __init__(
        self,
        key: str = "",
        value: str = "",
        config_name: str = "",
        detail_msg: str = "",
    ):
        self._key = key
        self._value = value
        self._config_name = config_name
        self._detail_msg = detail_msg


class KeyAddedConfigError(ConfigError):
    """Raise when a key should be added to a config."""

    def __init__(self, key: str, value: str, config_name: str):
        super().__init__(key, value, config_name)
        self._detail_msg = (
            f"Defining new keys is not allowed when updating a config: "
            f"key='{self._key}', value='{self._value}', config_name='{self._config_name}'"
        )


class TypeMismatchConfigError(ConfigError):
    """Raise when the type of a value does not match the default type."""

    def __init__(self, key: str, value: str, config_name: str, extra_msg: str):
        super().__init__(key, value, config_name)
        self._detail_msg = (
            f"Types of values must match default config: "
            f"key='{self._key}', value='{self._value}', config_name='{self._config_name}', types='{extra_msg}'"
        )


class OutOfRangeConfigError(ConfigError):
    """Raise when a value lies outside of its valid range or set of valid values."""

    def __init__(self, key: str, value: str, valid: str):
        super().__init__(key, value)
        self._detail_msg = (
            f"Value outside of its valid range: key='{self._key}', value='{self._value}', valid='{valid}'"
        )
