"""
Logging of the stores and their persistence.

All the persistence diagnostics (unavailable storages, failed migrations,
failed writes and hydrations) are logged, not raised: they are advisory,
and must not break the normal in-memory usage of the stores.

Every message of a persisted store carries the store's storage name
in the log records' extras. It is used either as a prefix of the messages
in the text formats (e.g. ``[counter] Failed to ...``), or as a separate
field in the JSON format (e.g. ``{"storage": "counter", ...}``).

The logging is configured by the applications as usual. :func:`configure`
is a shortcut for the CLI and for the simple scripts.
"""
import copy
import enum
import logging
from typing import Any, Collection, Dict, MutableMapping, Optional, Tuple, Type, Union

import pythonjsonlogger.core
import pythonjsonlogger.json

from statebox._cogs.helpers import typedefs

DEFAULT_JSON_REFKEY = 'storage'
""" A key for the storage names in JSON logs, as seen by the log parsers. """

REF_ATTR = 'statebox_ref'
""" An attribute of the log records with the storage name (if any). """

# The upper bounds of the levels for the severities; above all of them, it is fatal.
SEVERITIES = [
    (logging.DEBUG, 'debug'),
    (logging.INFO, 'info'),
    (logging.WARNING, 'warn'),
    (logging.ERROR, 'error'),
]

# Other libraries' loggers, which are too verbose unless debugging.
QUIETED_LOGGERS = ['asyncio']


class LogFormat(enum.Enum):
    """ Log formats, as specified on CLI. """
    PLAIN = '%(message)s'
    FULL = '[%(asctime)s] %(name)-20.20s [%(levelname)-8.8s] %(message)s'
    JSON = enum.auto()


def get_ref(record: logging.LogRecord) -> Optional[str]:
    ref: Optional[str] = getattr(record, REF_ATTR, None)
    return ref


def get_severity(levelno: int) -> str:
    for upper_level, severity in SEVERITIES:
        if levelno <= upper_level:
            return severity
    return 'fatal'


class StoreFormatter(logging.Formatter):
    """ A base class for all our own formatters, to distinguish them in the handlers. """


class StoreTextFormatter(StoreFormatter):
    pass


class StoreJsonFormatter(StoreFormatter, pythonjsonlogger.json.JsonFormatter):
    """
    A JSON formatter with the storage name as a separate field.

    The severity is added in the terms of the log collectors, regardless
    of the level names (which can be customised in the applications).
    """

    def __init__(
            self,
            *args: Any,
            refkey: Optional[str] = None,
            reserved_attrs: Collection[str] = pythonjsonlogger.core.RESERVED_ATTRS,
            timestamp: Union[bool, str] = True,
            **kwargs: Any,
    ) -> None:
        super().__init__(*args, reserved_attrs=[*reserved_attrs, REF_ATTR], timestamp=timestamp, **kwargs)
        self._refkey: str = refkey or DEFAULT_JSON_REFKEY

    def add_fields(
            self,
            log_record: Dict[str, Any],
            record: logging.LogRecord,
            message_dict: Dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)

        ref = get_ref(record)
        if ref is not None:
            log_record[self._refkey] = ref
        log_record.setdefault('severity', get_severity(record.levelno))


class StorePrefixingMixin(StoreFormatter):
    """ Prefix the messages with the storage names, if the records have them. """

    def format(self, record: logging.LogRecord) -> str:
        ref = get_ref(record)
        if ref is not None:
            record = copy.copy(record)  # shallow
            record.msg = f"[{ref}] {record.msg}"
        return super().format(record)


class StorePrefixingTextFormatter(StorePrefixingMixin, StoreTextFormatter):
    pass


class StorePrefixingJsonFormatter(StorePrefixingMixin, StoreJsonFormatter):
    pass


FORMATTERS: Dict[Tuple[bool, bool], Type[StoreFormatter]] = {
    # (is_json, is_prefixed)
    (False, False): StoreTextFormatter,
    (False, True): StorePrefixingTextFormatter,
    (True, False): StoreJsonFormatter,
    (True, True): StorePrefixingJsonFormatter,
}


class StoreLogger(typedefs.LoggerAdapter):
    """
    A logger/adapter to carry the storage name of a store for formatting.

    Constructed for every persisted store, but only when the messages
    are actually logged (the storage name can be changed at runtime).
    """

    def __init__(self, *, name: str) -> None:
        super().__init__(logger, {REF_ATTR: name})

    def process(
            self,
            msg: str,
            kwargs: MutableMapping[str, Any],
    ) -> Tuple[str, MutableMapping[str, Any]]:
        # Keep both the message's & the adapter's extras, the latter prevailing.
        kwargs["extra"] = {**kwargs.get('extra', {}), **(self.extra or {})}
        return msg, kwargs


logger = logging.getLogger('statebox.persistence')


def configure(
        debug: Optional[bool] = None,
        verbose: Optional[bool] = None,
        quiet: Optional[bool] = None,
        log_format: Union[LogFormat, str] = LogFormat.FULL,
        log_prefix: Optional[bool] = False,
        log_refkey: Optional[str] = None,
) -> logging.Handler:
    """
    Log to stderr in one of the supported formats, with the requested verbosity.

    The added handler is returned, so that it can be removed later if needed.
    """
    formatter = make_formatter(log_format=log_format, log_prefix=log_prefix, log_refkey=log_refkey)
    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.addHandler(handler)
    root.setLevel(logging.DEBUG if debug or verbose else logging.WARNING if quiet else logging.INFO)

    # Silence the other libraries unless debugging: neither propagate, nor print via lastResort.
    for name in QUIETED_LOGGERS:
        quieted = logging.getLogger(name)
        quieted.propagate = bool(debug)
        if not debug:
            quieted.handlers[:] = [logging.NullHandler()]

    return handler


def make_formatter(
        log_format: Union[LogFormat, str] = LogFormat.FULL,
        log_prefix: Optional[bool] = False,
        log_refkey: Optional[str] = None,
) -> StoreFormatter:
    """
    Build a formatter for a predefined format or for a custom text format.

    The text formats are prefixed with the storage names by default,
    the JSON format is not (the names are in their own field anyway).
    """
    is_json = log_format is LogFormat.JSON
    is_prefixed = log_prefix if log_prefix is not None else not is_json
    cls = FORMATTERS[is_json, bool(is_prefixed)]
    if is_json:
        return cls(refkey=log_refkey)  # type: ignore[call-arg]
    elif isinstance(log_format, LogFormat):
        return cls(log_format.value)
    elif isinstance(log_format, str):
        return cls(log_format)
    else:
        raise ValueError(f"Unsupported log format: {log_format!r}")
