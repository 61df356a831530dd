# SPDX-License-Identifier: BSD-3-Clause

"""
Output plugins for check runs.

A plugin receives every finished L{Report} and, once all checks have
run, the L{Scribe} holding them. The bundled plugins write the results
in formats that CI systems and scripts can pick up.

Every module in the L{pagecheck.plugin} package is a plugin module.
A plugin module exposes two functions. The first one adds its options
to the command line parser::

    def plugin_arguments(parser):
        parser.add_argument('--tap', metavar='FILE',
                            help='write results in TAP format')

A plugin should stay inactive unless one of its options is given.
The second function yields the plugins that the parsed options
(an L{argparse.Namespace}) ask for::

    def plugin_create(args):
        if args.tap is not None:
            yield TAPPlugin(args.tap)

Everything C{plugin_create()} yields must be a L{Plugin} instance.
When a requested plugin cannot be set up, for example because its
output file cannot be written, the module raises L{PluginError} with
a message for the user.
"""

from __future__ import annotations

from argparse import ArgumentParser, Namespace
from importlib import import_module
from logging import getLogger
from pkgutil import iter_modules
from types import ModuleType
from typing import TYPE_CHECKING, Iterable, Iterator

if TYPE_CHECKING:
    # pylint: disable=cyclic-import
    from pagecheck.report import Report, Scribe


_LOG = getLogger(__name__)


class PluginError(Exception):
    """Raised by C{plugin_create()} when a requested plugin cannot be made."""


class Plugin:
    """
    Base class for plugins.

    All methods do nothing by default; override the ones you need.
    """

    def report_added(self, report: Report) -> None:
        """Called for each check as soon as its L{Report} is final."""

    def postprocess(self, scribe: Scribe) -> None:
        """Called once after all checks have run.

        This is where plugins write their output.
        """

    def close(self) -> None:
        """Called last, to release whatever the plugin holds on to."""


class PluginCollection(Plugin):
    """Forwards every plugin call to each plugin it contains, in order."""

    def __init__(self, plugins: Iterable[Plugin] = ()):
        self.plugins = tuple(plugins)

    def report_added(self, report: Report) -> None:
        for plugin in self.plugins:
            plugin.report_added(report)

    def postprocess(self, scribe: Scribe) -> None:
        for plugin in self.plugins:
            plugin.postprocess(scribe)

    def close(self) -> None:
        for plugin in self.plugins:
            plugin.close()


# mypy does not know that packages have __path__.
#   https://github.com/python/mypy/issues/1422
if TYPE_CHECKING:
    __path__: list[str]


def load_plugins() -> Iterator[ModuleType]:
    """
    Import and yield every plugin module.

    A module that fails to import is logged and skipped.
    """

    for module_info in iter_modules(__path__, f"{__name__}."):
        try:
            module = import_module(module_info.name)
        except Exception:  # pylint: disable=broad-except
            _LOG.exception('Failed to import plugin module "%s":', module_info.name)
        else:
            yield module


def add_plugin_arguments(module: ModuleType, parser: ArgumentParser) -> None:
    """
    Let a plugin module add its options to C{parser}.

    Problems are logged, not raised: a broken plugin should not stop
    the other plugins or the checks from running.
    """

    register = getattr(module, "plugin_arguments", None)
    if register is None:
        _LOG.info('Plugin module "%s" has no command line options', module.__name__)
        return
    try:
        register(parser)
    except Exception:  # pylint: disable=broad-except
        _LOG.exception(
            'Plugin module "%s" failed to register its options:', module.__name__
        )


def create_plugins(module: ModuleType, args: Namespace) -> list[Plugin]:
    """
    Return the plugins of C{module} that the parsed command line asks for.

    A L{PluginError} or other exception from the module is logged and
    results in no plugins from that module.

    @raise AttributeError:
        If the module does not define C{plugin_create()}.
    @raise TypeError:
        If the module creates something that is not a L{Plugin}.
    """

    name = module.__name__
    create = getattr(module, "plugin_create", None)
    if create is None:
        _LOG.error('Plugin module "%s" has no plugin_create() function', name)
        raise AttributeError(f"{name}.plugin_create")

    try:
        created = list(create(args))
    except PluginError as ex:
        _LOG.error('Could not create plugin from module "%s": %s', name, ex)
        return []
    except Exception:  # pylint: disable=broad-except
        _LOG.exception('Plugin module "%s" failed to create its plugins:', name)
        return []

    for plugin in created:
        if not isinstance(plugin, Plugin):
            _LOG.error(
                'Plugin module "%s" created a "%s" object, which is not a Plugin',
                name,
                type(plugin).__name__,
            )
            raise TypeError(type(plugin))
    return created
