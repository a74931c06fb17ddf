from inspect import FullArgSpec, getfile, getfullargspec, getsourcelines
from os.path import basename
import re
from time import time
from typing import Any, Callable

from src.platform.logging.loguru_io_config import (
    MAX_LOG_CONTENT_LENGTH,
    SENSITIVE_KEYWORDS,
    call_depth_var,
    chain_start_time_var,
)


_MASK = '********'
_SENSITIVE_PATTERN = re.compile(
    r'(["\']?)('
    + '|'.join(sorted(SENSITIVE_KEYWORDS))
    + r')(["\']?\s*[:=]\s*)(["\']?)[^,"\'\s}\)]+',
    re.IGNORECASE,
)


def get_chain_start_time() -> float:
    if not (start_time := chain_start_time_var.get()):
        start_time = time()
        chain_start_time_var.set(start_time)
    return start_time


def build_call_target_func_path(func: Callable[..., Any]) -> str:
    target = getattr(func, '__func__', func)
    try:
        lineno = getsourcelines(target)[1]
    except (OSError, TypeError):
        lineno = 0
    return f'{basename(getfile(target))}::{func.__qualname__}:{lineno}'


def reset_call_depth() -> None:
    layer = max(call_depth_var.get() - 1, 0)
    call_depth_var.set(layer)
    if not layer:
        chain_start_time_var.set(0)


def normalize_args_kwargs(
    func: Callable[..., Any], *args: Any, **kwargs: Any
) -> tuple[tuple[Any, ...], dict[Any, Any]]:
    """Drop arguments the wrapped callable cannot accept (e.g. extra FastAPI injections)."""
    if hasattr(func, '__wrapped__'):
        func = func.__wrapped__  # type: ignore
    full_arg_spec: FullArgSpec = getfullargspec(func)
    spec_args: list[str] = full_arg_spec.args

    if not full_arg_spec.varkw:
        kw_list: list[str] = spec_args + full_arg_spec.kwonlyargs
        kwargs = {k: v for k, v in kwargs.items() if k in kw_list}

    if not full_arg_spec.varargs:
        positional = [name for name in spec_args if name not in kwargs]
        args = args[: len(positional)]

    return args, kwargs


def mask_sensitive(data: Any) -> Any:
    if isinstance(data, bytes | bytearray):
        return f'<{len(data)} bytes>'
    if not isinstance(data, str):
        return data
    return _SENSITIVE_PATTERN.sub(rf'\1\2\3\4{_MASK}', data)


def should_mask_keyword(keyword: Any, value: Any) -> Any:
    if isinstance(keyword, str) and keyword.lower().replace('-', '_') in SENSITIVE_KEYWORDS:
        return _MASK
    return value


def truncate_content(data: Any) -> Any:
    if isinstance(data, str) and len(data) > MAX_LOG_CONTENT_LENGTH:
        return f'{data[:MAX_LOG_CONTENT_LENGTH]}...(+{len(data) - MAX_LOG_CONTENT_LENGTH} chars)'
    return data
