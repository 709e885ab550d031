#!/usr/bin/env python3

# This file is part of netapply. See LICENSE file for license information.

"""Apply the network configuration from a config drive to this host."""

import argparse
import json
import logging
import os
import sys
import time

from netapply import log, settings, sources, subp, util, version
from netapply.exceptions import (
    ConfigNotFoundError,
    MissingSectionError,
    SettingsError,
)
from netapply.net import network_config
from netapply.net.applier import apply_network_config
from netapply.net.netops.windows import (
    PowerShell,
    WindowsAdapterInventory,
    WindowsNetOps,
)
from netapply.net.resolver import resolve
from netapply.net.results import RunReport
from netapply.schema import validate_settings

LOG = logging.getLogger(__name__)

NAME = "netapply"

REPORT_FORMATS = ("text", "json")

WELCOME_MSG_TPL = "netapply v. {version} running at {timestamp}{dry_run}."


def get_parser(parser=None):
    """Build or extend an arg parser for the netapply utility.

    @param parser: Optional existing ArgumentParser instance which will be
        extended to support the args of this utility.

    @returns: ArgumentParser with proper argument configuration.
    """
    if not parser:
        parser = argparse.ArgumentParser(
            prog=NAME,
            description=(
                "Rename and configure network adapters from the"
                " network-config document on a config drive."
            ),
        )
    parser.add_argument(
        "--version",
        "-v",
        action="version",
        version="%(prog)s " + version.version_string(),
        help="Show program's version number and exit.",
    )
    parser.add_argument(
        "-c",
        "--config",
        type=str,
        default=None,
        help=(
            "Path to the network configuration document. Default is to"
            " search attached config drives."
        ),
    )
    parser.add_argument(
        "-s",
        "--settings",
        type=str,
        default=None,
        help=(
            "Path to a YAML settings file. Default is the path in the %s"
            " environment variable, if set." % settings.CFG_ENV_NAME
        ),
    )
    parser.add_argument(
        "-n",
        "--dry-run",
        action="store_true",
        default=False,
        help="Log the commands that would be run without running them.",
    )
    parser.add_argument(
        "-d",
        "--debug",
        action="store_true",
        default=False,
        help="Log at debug level (default: %(default)s).",
    )
    parser.add_argument(
        "-f",
        "--report-format",
        choices=REPORT_FORMATS,
        default="text",
        help="Format of the run summary (default: %(default)s).",
    )
    return parser


def read_settings(path=None) -> dict:
    """Return the builtin settings merged with the settings file at path.

    @raises: SettingsError when the file is missing, unreadable or does not
        validate.
    """
    if path is None:
        path = os.environ.get(settings.CFG_ENV_NAME)
    cfg = {}
    if path:
        if not os.path.isfile(path):
            raise SettingsError("Settings file %s not found" % path)
        try:
            cfg = util.read_conf(path)
        except (OSError, UnicodeDecodeError) as e:
            raise SettingsError(
                "Unable to read settings file %s: %s" % (path, e)
            ) from e
        validate_settings(cfg)
    return util.mergemanydict([cfg, settings.CFG_BUILTIN])


def find_config(args, cfg: dict, powershell: PowerShell) -> str:
    if args.config:
        if not os.path.isfile(args.config):
            raise ConfigNotFoundError(
                "Network configuration %s not found" % args.config
            )
        return args.config
    drive_cfg = cfg["config_drive"]
    return sources.find_network_config(
        drive_cfg["labels"], drive_cfg["filename"], powershell
    )


def format_report(report: RunReport, fmt: str) -> str:
    if fmt == "json":
        return json.dumps(  # Pretty, sorted json
            report.to_dict(), indent=1, sort_keys=True, separators=(",", ": ")
        )
    return report.format_text()


def handle_args(name, args):
    """Handle calls to the netapply cli.

    @return: 0 when the configuration was processed, even with per-adapter
        failures; 1 when no configuration was found or it could not be
        read; 2 when it has no ethernets section; 3 on invalid settings.
    """
    try:
        cfg = read_settings(args.settings)
    except SettingsError as e:
        return util.error(str(e), rc=settings.EXIT_BAD_SETTINGS)

    exporter = log.setup_logging(
        logging.DEBUG if args.debug else cfg["log_level"], cfg["log_file"]
    )
    LOG.info(
        WELCOME_MSG_TPL.format(
            version=version.version_string(),
            timestamp=time.strftime(
                "%a, %d %b %Y %H:%M:%S +0000", time.gmtime()
            ),
            dry_run=" (dry run)" if args.dry_run else "",
        )
    )

    commands = cfg["commands"]
    if not args.dry_run and not subp.which(commands["netsh"]):
        LOG.warning("Command %s not found on PATH", commands["netsh"])
    powershell = PowerShell(
        commands["powershell"],
        timeout=commands["timeout"],
        dry_run=args.dry_run,
    )

    try:
        path = find_config(args, cfg, powershell)
    except ConfigNotFoundError as e:
        LOG.error("%s", e)
        return settings.EXIT_CONFIG_NOT_FOUND
    except subp.ProcessExecutionError as e:
        log.logexc(LOG, "Unable to search config drives: %s", e.summary)
        return settings.EXIT_CONFIG_NOT_FOUND
    try:
        text = util.load_text_file(path)
    except (OSError, UnicodeDecodeError) as e:
        LOG.error("Unable to read network configuration %s: %s", path, e)
        return settings.EXIT_CONFIG_NOT_FOUND

    try:
        config = network_config.load(text)
    except MissingSectionError as e:
        LOG.error("%s: %s", path, e)
        return settings.EXIT_MISSING_SECTION

    inventory = WindowsAdapterInventory(powershell)
    netops = WindowsNetOps(
        commands["netsh"],
        powershell=powershell,
        timeout=commands["timeout"],
        dry_run=args.dry_run,
    )
    report = RunReport()
    try:
        adapters = inventory.list_adapters()
    except subp.ProcessExecutionError as e:
        log.logexc(LOG, "Unable to list network adapters: %s", e.summary)
        adapters = []
    LOG.debug("Adapter snapshot: %s", adapters)

    resolved = resolve(config, adapters, report)
    apply_network_config(
        resolved, inventory, netops, adapters=adapters, report=report
    )

    logs = exporter.export_logs()
    report.warnings.extend(logs.get("WARNING", []) + logs.get("ERROR", []))
    log.flush_loggers(LOG)
    sys.stdout.write("%s\n" % format_report(report, args.report_format))
    return report.exit_code


def main(sysv_args=None):
    parser = get_parser()
    sys.exit(handle_args(NAME, parser.parse_args(sysv_args)))


if __name__ == "__main__":
    main()
