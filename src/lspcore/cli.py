import importlib
import logging
import pathlib
from logging.handlers import RotatingFileHandler
from typing import Any, List, Optional

import click

from .__version__ import __version__
from .core.utils.logging import TRACE, LoggingDescriptor
from .jsonrpc2.protocol import JsonRPCProtocol
from .jsonrpc2.transport import StdioTransport
from .language_server.engine import LanguageEngine
from .language_server.protocol import LanguageServerProtocol

_logger = LoggingDescriptor(name=__package__)


def get_log_handler(logfile: str) -> logging.FileHandler:
    log_fn = pathlib.Path(logfile)
    roll_over = log_fn.exists()

    handler = RotatingFileHandler(log_fn, backupCount=5)
    formatter = logging.Formatter(
        fmt="[%(levelname)-7s] %(asctime)s (%(name)s) %(message)s", datefmt="%Y-%m-%d %H:%M:%S"
    )
    handler.setFormatter(formatter)

    if roll_over:
        handler.doRollover()

    return handler


def load_engine(ctx: click.Context, param: Any, value: Optional[str]) -> Optional[LanguageEngine]:
    """Creates the engine from a `module:ClassName` reference."""
    if value is None:
        return None

    module_name, sep, class_name = value.partition(":")
    if not sep or not module_name or not class_name:
        raise click.BadParameter(f"{value!r} is not in the form 'module:ClassName'.", ctx=ctx, param=param)

    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise click.BadParameter(f"Can't import module {module_name!r}: {e}", ctx=ctx, param=param) from e

    engine_type = getattr(module, class_name, None)
    if not isinstance(engine_type, type) or not issubclass(engine_type, LanguageEngine):
        raise click.BadParameter(f"{value!r} is not a subclass of LanguageEngine.", ctx=ctx, param=param)

    return engine_type()


@click.command(context_settings={"auto_envvar_prefix": "LSPCORE"})
@click.option(
    "--log",
    is_flag=True,
    help="Enables logging.",
    show_envvar=True,
)
@click.option(
    "--log-level",
    type=click.Choice(["TRACE", "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]),
    help="Sets the log level.",
    default="CRITICAL",
    show_default=True,
    show_envvar=True,
)
@click.option(
    "--log-calls",
    is_flag=True,
    help="Enables logging of method/function calls.",
    show_envvar=True,
)
@click.option(
    "--log-file",
    type=click.Path(dir_okay=False, path_type=str),
    default=None,
    help="Writes the log to this file instead of stderr. The previous file is rolled over.",
    show_envvar=True,
)
@click.option(
    "--engine",
    "engine",
    callback=load_engine,
    default=None,
    metavar="MODULE:CLASS",
    help="The LanguageEngine subclass that implements the language features.",
    show_envvar=True,
)
@click.option(
    "--max-consecutive-failures",
    type=click.IntRange(min=0),
    default=JsonRPCProtocol.DEFAULT_MAX_CONSECUTIVE_FAILURES,
    show_default=True,
    help="Stops the server after this many unreadable messages in a row.",
    show_envvar=True,
)
@click.version_option(version=__version__, prog_name="lspcore")
@click.pass_context
def lspcore(
    ctx: click.Context,
    log: bool,
    log_level: str,
    log_calls: bool,
    log_file: Optional[str],
    engine: Optional[LanguageEngine],
    max_consecutive_failures: int,
) -> None:
    """Runs a language server over stdin/stdout.

    The exit code is 0 if the client sent `shutdown` before `exit`, otherwise 1.
    """
    if log:
        if log_calls:
            LoggingDescriptor.set_call_tracing(True)
            LoggingDescriptor.set_call_tracing_default_level(TRACE)

        handlers: List[logging.Handler] = []
        if log_file:
            handlers.append(get_log_handler(log_file))
        else:
            handlers.append(logging.StreamHandler(click.get_text_stream("stderr")))

        logging.basicConfig(level=log_level, format="%(name)s:%(levelname)s: %(message)s", handlers=handlers)

    transport = StdioTransport(click.get_binary_stream("stdin"), click.get_binary_stream("stdout"))

    server = LanguageServerProtocol(transport, engine, max_consecutive_failures=max_consecutive_failures)

    _logger.info(lambda: f"Starting lspcore {__version__} with {type(server.engine).__qualname__}")

    normal = server.run()

    _logger.info(lambda: f"lspcore stopped {'normally' if normal else 'abnormally'}")

    ctx.exit(0 if normal else 1)
