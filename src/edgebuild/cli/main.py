"""
Command-line interface for edgebuild.

This module parses arguments, loads configuration, turns flags and
interactive answers into a RunPolicy and hands the selected project to a
BuildOrchestrator. Every fatal error ends the process with exit code 1.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Callable, List, Optional

from ..config import CONFIG_ENV_VAR, get_config, resolve_config_path, set_config_path
from ..models.config import AppConfig, ProjectConfig
from ..models.runtime import InstallReport, RunPolicy, UpdateCheck
from ..orchestration import BUILD_MODES, BuildOrchestrator
from ..packaging import install_target, restore_backup
from ..validation import (
    BuildError,
    InstallError,
    ValidationError,
    handle_cli_error,
    validate_launcher_name,
    validate_project_name,
)

# --- Logging Setup ---
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)-5.5s] %(name)s:%(filename)s:%(lineno)d\t %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
    stream=sys.stdout,
)
logger = logging.getLogger(__name__)

InputFunc = Callable[[str], str]


def build_parser(project_names: Optional[List[str]] = None) -> argparse.ArgumentParser:
    available = f" Available: {project_names}" if project_names else ""
    parser = argparse.ArgumentParser(
        prog="edgebuild",
        description="Build an application from source and install it as a customized macOS app.",
    )
    parser.add_argument(
        "--config",
        type=Path,
        help=f"Path to config.toml (default: ${CONFIG_ENV_VAR} or conf/config.toml).",
    )
    parser.add_argument(
        "-p",
        "--project",
        type=str,
        help=f"Project to build. Defaults to the first project in projects.toml.{available}",
    )
    parser.add_argument(
        "--mode",
        choices=BUILD_MODES,
        default="full",
        help="full: sync, watch upstream, build, install. quick: build and install the "
             "existing working copy. debug: debug build, then run it with RUST_LOG.",
    )
    parser.add_argument(
        "-y",
        "--yes",
        action="store_true",
        help="Answer yes to every prompt (build updates, create the default launcher).",
    )
    parser.add_argument(
        "--rebuild",
        action="store_true",
        help="Rebuild even if the latest version is already installed.",
    )
    launcher_group = parser.add_mutually_exclusive_group()
    launcher_group.add_argument(
        "--launcher",
        metavar="NAME",
        help="Create a command-line launcher with this name.",
    )
    launcher_group.add_argument(
        "--no-launcher",
        action="store_true",
        help="Do not create a command-line launcher.",
    )
    parser.add_argument(
        "--launch",
        action="store_true",
        help="Open the application after installing it.",
    )
    parser.add_argument(
        "--rollback",
        action="store_true",
        help="Restore the backup of the previous installation and exit.",
    )
    return parser


def prompt_yes_no(question: str, default: bool = False, input_func: InputFunc = input) -> bool:
    """Ask a y/N question; an empty answer picks ``default``."""
    suffix = "[Y/n]" if default else "[y/N]"
    answer = input_func(f"{question} {suffix}: ").strip().lower()
    if not answer:
        return default
    return answer in ("y", "yes")


def prompt_launcher_name(default: str, input_func: InputFunc = input) -> str:
    """Ask for a launcher name until a valid one (or the default) is given."""
    while True:
        answer = input_func(f"Enter the command name [{default}]: ").strip()
        try:
            return validate_launcher_name(answer or default)
        except ValidationError as e:
            print(f"Invalid name: {e}")


def resolve_policy(
    args: argparse.Namespace,
    project: ProjectConfig,
    update_check: Optional[UpdateCheck],
    interactive: bool,
    input_func: InputFunc = input,
) -> RunPolicy:
    """
    Turn flags and, when interactive, prompt answers into a RunPolicy.

    Flags always win. Without a terminal the defaults are: do not rebuild
    an up-to-date install, build an available update, no launcher.
    """
    policy = RunPolicy(launch_after_install=args.launch or args.mode == "quick")
    ask = interactive and not args.yes

    if update_check is not None and update_check.latest is not None:
        if update_check.up_to_date:
            if args.rebuild:
                policy.rebuild_if_current = True
            elif ask:
                policy.rebuild_if_current = prompt_yes_no(
                    "You already have the latest version. Rebuild anyway?", input_func=input_func
                )
        elif update_check.has_previous_build and ask:
            policy.build_if_outdated = prompt_yes_no(
                "A newer version is available. Build it?", default=True, input_func=input_func
            )

    default_name = project.default_launcher_name or project.name
    if args.launcher:
        policy.create_launcher = True
        policy.launcher_name = validate_launcher_name(args.launcher, field_name="--launcher argument")
    elif args.no_launcher or args.mode == "debug":
        policy.create_launcher = False
    elif args.yes:
        policy.create_launcher = True
        policy.launcher_name = default_name
    elif ask:
        policy.create_launcher = prompt_yes_no(
            "Create a command-line launcher?", input_func=input_func
        )
        if policy.create_launcher:
            policy.launcher_name = prompt_launcher_name(default_name, input_func=input_func)

    return policy


def select_project(app_config: AppConfig, name: Optional[str]) -> ProjectConfig:
    """
    Raises:
        ValidationError: If ``name`` is malformed or not configured
    """
    if not name:
        return app_config.projects[0]
    validated_name = validate_project_name(name, field_name="--project argument")
    try:
        return app_config.get_project(validated_name)
    except KeyError:
        available = ", ".join(p.name for p in app_config.projects)
        raise ValidationError(
            f"Project '{validated_name}' not found in configuration. Available projects: {available}",
            field_name="--project argument",
            value=validated_name,
        )


def log_install_summary(project: ProjectConfig, report: InstallReport) -> None:
    logger.info(f"{project.display_name} is installed at {report.install_dir}")
    if report.launcher_path is not None:
        logger.info(f"Command-line launcher: {report.launcher_path}")
    if report.backup_dir is not None:
        log_rollback_instructions(install_target(project)[0], report.backup_dir, project.name)


def log_rollback_instructions(install_dir: Path, backup_dir: Path, project_name: str) -> None:
    logger.info(f"Previous version backed up at {backup_dir}")
    logger.info(f"To restore it run 'edgebuild --project {project_name} --rollback', or:")
    logger.info(f"  rm -rf '{install_dir}'")
    logger.info(f"  mv '{backup_dir}' '{install_dir}'")


def main_cli(argv: Optional[List[str]] = None) -> None:
    """
    Main command-line entry point.

    Raises:
        SystemExit: With code 1 on configuration errors, validation
            failures or any fatal build error.
    """
    args = build_parser().parse_args(argv)

    set_config_path(resolve_config_path(args.config))

    try:
        app_config = get_config()
    except (FileNotFoundError, KeyError, ValidationError) as e:
        handle_cli_error(
            error=e,
            context="configuration loading",
            exit_code=1,
            include_traceback=not isinstance(e, ValidationError),
            logger=logger,
        )

    try:
        project = select_project(app_config, args.project)
    except ValidationError as e:
        handle_cli_error(error=e, context="project selection", exit_code=1, logger=logger)

    if args.rollback:
        if not restore_backup(project):
            handle_cli_error(
                error=InstallError(f"No backup found at {install_target(project)[1]}"),
                context="rollback",
                exit_code=1,
                logger=logger,
            )
        logger.info(f"Rolled back {project.display_name}")
        return

    logger.info(f">>> {project.display_name} ({project.name}), mode: {args.mode}")
    interactive = sys.stdin.isatty()

    try:
        orchestrator = BuildOrchestrator(project, app_config.builder, mode=args.mode)
        orchestrator.check_dependencies()

        update_check = None
        if orchestrator.config.syncs_source:
            update_check = orchestrator.check_for_updates()
        policy = resolve_policy(args, project, update_check, interactive)

        summary = orchestrator.run(policy, update_check=update_check)
    except InstallError as e:
        if e.backup_path is not None:
            log_rollback_instructions(install_target(project)[0], e.backup_path, project.name)
        handle_cli_error(error=e, context="installation", exit_code=1, logger=logger)
    except (BuildError, ValidationError) as e:
        handle_cli_error(error=e, context=f"building {project.name}", exit_code=1, logger=logger)

    if summary.skipped:
        logger.info("Nothing to do.")
    elif summary.install is not None:
        if summary.restarts:
            logger.info(f"Build restarted {summary.restarts} time(s) because upstream changed")
        log_install_summary(project, summary.install)
    logger.info(f"<<< Finished {project.name}")
