"""Counting verbosity option.

``-v`` may be repeated (``-v -v`` or ``-vv``) to raise verbosity one
step at a time, while ``-v=N`` or ``--verbose=N`` sets it outright.
For compatibility with boolean-flag conventions ``--verbose=true``
behaves like one more ``-v`` and ``--verbose=false`` resets the count
to zero.  Occurrences are applied in command-line order.
"""

from __future__ import annotations

from collections.abc import Sequence

import click

SHORT = "-v"
LONG = "--verbose"


class Count:
    """An integer that bare occurrences increment and explicit values set."""

    def __init__(self, value: int = 0) -> None:
        self.value = value

    def __int__(self) -> int:
        return self.value

    def increment(self) -> None:
        self.value += 1

    def set(self, text: str) -> None:
        """Apply an explicit ``=value`` token.

        Raises:
            ValueError: If *text* is neither an integer nor ``true``/``false``.
        """
        if text == "true":
            self.increment()
        elif text == "false":
            self.value = 0
        else:
            try:
                self.value = int(text)
            except ValueError:
                raise ValueError(f"invalid count {text!r}") from None


def resolve_verbosity(tokens: Sequence[str]) -> int:
    """Fold ``--verbose`` tokens, in order, into a verbosity level."""
    count = Count()
    for token in tokens:
        count.set(token)
    return int(count)


def normalize_count_args(args: Sequence[str]) -> list[str]:
    """Rewrite every form of the counting flag as ``--verbose=VALUE``.

    Bare ``-v``/``--verbose`` becomes ``--verbose=true`` and ``-vv``
    expands to one token per ``v``, so the flag never consumes the
    following argument.  Arguments after ``--`` are left alone.
    """
    out: list[str] = []
    for i, arg in enumerate(args):
        if arg == "--":
            out.extend(args[i:])
            break
        if arg in (SHORT, LONG):
            out.append(f"{LONG}=true")
        elif arg.startswith(SHORT + "="):
            out.append(f"{LONG}={arg[len(SHORT) + 1 :]}")
        elif len(arg) > 2 and arg[0] == "-" and set(arg[1:]) == {"v"}:
            out.extend([f"{LONG}=true"] * (len(arg) - 1))
        else:
            out.append(arg)
    return out


class CountingCommand(click.Command):
    """A click command whose ``-v`` behaves as a counting flag."""

    def parse_args(self, ctx: click.Context, args: list[str]) -> list[str]:
        return super().parse_args(ctx, normalize_count_args(args))


class CountParamType(click.ParamType):
    """Click parameter accepting an integer or ``true``/``false``.

    The token is kept as text so it can be applied in order with
    :meth:`Count.set`.
    """

    name = "count"

    def convert(
        self,
        value: object,
        param: click.Parameter | None,
        ctx: click.Context | None,
    ) -> str:
        text = str(value).strip()
        try:
            Count().set(text)
        except ValueError as exc:
            self.fail(str(exc), param, ctx)
        return text
