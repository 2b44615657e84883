"""
Introspection utilities that build upon the built-in inspect module.
"""

from __future__ import annotations

from contextlib import suppress
from inspect import Signature, Parameter
from typing import Any

__all__ = ['split_arg_vals']

_empty = Parameter.empty


def split_arg_vals(
    sig: Signature, args, kwargs, *, skip_first: bool = False, apply_defaults: bool = False
) -> tuple[list[Any], dict[str, Any]]:
    """
    Normalizes the given ``*args`` and ``**kwargs`` based on the given Signature so that equivalent calls produce the
    same result.  Arguments for positional-or-keyword parameters that were provided by keyword are moved into the
    positional list, as long as every preceding positional parameter also received a value.

    Unlike :meth:`inspect.BoundArguments.apply_defaults`, default values are only inserted when ``apply_defaults`` is
    True, so a call that did not provide any arguments results in empty output.

    :param sig: The signature of the function the given arguments are for
    :param args: Positional arguments explicitly provided for the function with the given signature
    :param kwargs: Keyword args explicitly provided for the function with the given signature
    :param skip_first: Omit the value for the first parameter (i.e., ``self`` or ``cls``) from the results
    :param apply_defaults: Include default values for parameters that were not provided
    :return: Tuple of (list of args that can be provided as positional, dict of arg:value)
    :raises: :class:`TypeError` if the given arguments do not match the signature
    """
    vals = sig.bind(*args, **kwargs).arguments
    params = iter(sig.parameters.items())
    if skip_first:
        next(params, None)

    args_out = []
    kwargs_out = {}
    gap = False  # Once a positional parameter is skipped, later ones can no longer be passed positionally
    for name, param in params:
        if param.kind == Parameter.VAR_KEYWORD:
            with suppress(KeyError):
                kwargs_out.update(vals[name])
        elif param.kind == Parameter.VAR_POSITIONAL:
            with suppress(KeyError):
                args_out.extend(vals[name])
        elif param.kind in (Parameter.POSITIONAL_ONLY, Parameter.POSITIONAL_OR_KEYWORD):
            try:
                value = vals[name]
            except KeyError:
                if apply_defaults and param.default is not _empty:
                    value = param.default
                else:
                    gap = True
                    continue
            if gap:
                kwargs_out[name] = value
            else:
                args_out.append(value)
        else:
            try:
                kwargs_out[name] = vals[name]
            except KeyError:
                if apply_defaults and param.default is not _empty:
                    kwargs_out[name] = param.default

    return args_out, kwargs_out
