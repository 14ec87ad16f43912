# cli.py
from __future__ import annotations

import sys

import click

from macsetup.keepalive import SudoKeepAlive
from macsetup.plan import PlanError, default_plan, load_plan
from macsetup.prompts import confirm_configuration, default_configuration, gather_configuration
from macsetup.runner import StepFailure, run_steps
from macsetup.settings import SettingsError, load_settings
from macsetup.system import System
from macsetup.ui.console import Console, set_console


@click.command()
@click.option(
    "--quiet",
    "-q",
    is_flag=True,
    default=False,
    help="Use default values for every setting and never prompt",
)
@click.option(
    "--passphrase",
    envvar="MACSETUP_PASSPHRASE",
    default="",
    show_default=False,
    help="SSH key passphrase default (the only source of it in quiet mode)",
)
@click.option(
    "--plan",
    "plan_path",
    default=None,
    type=click.Path(dir_okay=False),
    help="Python file defining build(config, settings) or STEPS",
)
@click.option("--dry-run", is_flag=True, default=False, help="Show which steps would run, change nothing")
@click.option(
    "--debug",
    is_flag=True,
    default=False,
    help="Enable debug mode (show stack traces and detailed output)",
)
@click.pass_context
def cli(ctx, quiet, passphrase, plan_path, dry_run, debug):
    """macsetup: provision a new Mac, one idempotent step at a time."""
    console = Console(debug=debug)
    set_console(console)
    ctx.ensure_object(dict)

    system = ctx.obj.get("system") or System()

    try:
        settings = ctx.obj.get("settings") or load_settings()
    except SettingsError as e:
        console.print_error(
            "Invalid settings",
            str(e),
            suggestion="Fix or unset the MACSETUP_* environment variable and retry.",
        )
        sys.exit(1)

    try:
        defaults = default_configuration(settings, system, passphrase=passphrase or "")
        config = gather_configuration(defaults, quiet=quiet)

        if not confirm_configuration(config):
            console.print_info("Aborted. No changes were made.")
            return

        if plan_path:
            steps = load_plan(plan_path, config, settings)
            console.print_debug(f"loaded {len(steps)} step(s) from {plan_path}")
        else:
            steps = default_plan(config, settings)

        console.print_run_started(len(steps), dry_run=dry_run)

        keepalive = None if dry_run else SudoKeepAlive(system, interval=settings.keepalive_interval)
        outcomes = run_steps(steps, system, keepalive=keepalive, dry_run=dry_run)

        console.print_results(outcomes)

    except StepFailure as e:
        console.print_info(f"\nRun aborted at step {e.index}; later steps were not run.")
        sys.exit(e.exit_code if e.exit_code > 0 else 1)
    except PlanError as e:
        console.print_error(
            "Invalid plan",
            str(e),
            suggestion="A plan file looks like:\n  from macsetup.dsl import plan, sh\n  STEPS = plan(sh(...))",
        )
        sys.exit(1)
    except click.exceptions.Abort:
        raise
    except KeyboardInterrupt:
        console.print_info("\nInterrupted by user")
        sys.exit(130)
    except Exception as e:
        console.print_exception(e)
        sys.exit(1)


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()
