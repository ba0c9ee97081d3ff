"""versionslot

Keeps a semantic version in a one-line file of a remote repository and updates
it safely when several jobs bump it at the same time.

Usage:
    versionslot check <cfg_file> [--cursor=<version>] [-o <override>]...
    versionslot bump <cfg_file> <level> [--pre=<name>] [-o <override>]...
    versionslot set <cfg_file> <version> [-o <override>]...
    versionslot (-h | --help)
    versionslot --version

    versionslot bump ci/version.json minor --pre=rc

Arguments:
    <level>         major, minor, patch, final or pre

Options:
    -h --help               show this screen.
    --version               show version.
    --cursor=<version>      only report the stored version if it is newer than this one
    --pre=<name>            start or advance a prerelease (e.g. rc -> 1.2.0-rc.1)
    -o <override>           override a config setting, e.g. -o branch=release
"""
import json
import os
import sys

from docopt import docopt

from versionslot import __version__
from versionslot.bump import bump_from_params
from versionslot.config import (
    Settings,
    build_controller,
    conf_get,
    create_config,
    parse_cli_overrides,
    parse_env_overrides,
    read_config,
)
from versionslot.errors import VersionSlotError
from versionslot.sinks import LogSink
from versionslot.util import log
from versionslot.version import Version

version = __version__


def load_config(arguments, environ=None):
    environ = os.environ if environ is None else environ
    cli = parse_cli_overrides(arguments.get("-o"))
    env = parse_env_overrides(environ)
    file_conf = read_config(arguments.get("<cfg_file>"))
    return create_config(cli, env, file_conf)


def execute(arguments, conf) -> object:
    controller = build_controller(conf)
    if arguments.get("check"):
        cursor = arguments.get("--cursor")
        found = controller.check(Version.parse(cursor) if cursor else None)
        return [str(v) for v in found]
    if arguments.get("bump"):
        bump = bump_from_params(arguments.get("<level>"), arguments.get("--pre"))
        return {"version": str(controller.bump(bump))}
    if arguments.get("set"):
        target = Version.parse(arguments.get("<version>"))
        return {"version": str(controller.set_exact(target))}
    raise VersionSlotError("No command given")


def run(argv=None) -> bool:
    arguments = docopt(__doc__, argv=argv, version=f"versionslot {version}")
    sink = LogSink().install()
    try:
        conf = load_config(arguments)
        log.set_default_level(conf_get(conf, Settings.LOG_LEVEL))
        log.debug(f"[b]versionslot[/b] [u]{version}[/u] | config={log.plain(arguments.get('<cfg_file>'))}")
        result = execute(arguments, conf)
    except (VersionSlotError, ValueError) as e:
        log.error(log.plain(e))
        return False
    finally:
        sink.close()

    print(json.dumps(result))
    return True


def run_versionslot():
    result = run()
    if not result:
        sys.exit(1)
    else:
        sys.exit(0)


if __name__ == "__main__":
    run_versionslot()
