"""Command-line interface for the Firestore rules checks."""

import logging
import sys
from typing import Any, Dict, List, Optional

import click

from .emulator.environment import initialize_test_environment
from .emulator.errors import EmulatorError, EmulatorUnavailableError
from .models.core import CheckResult, SuiteReport
from .suite.cases import GROUPS, cases_for_group
from .suite.runner import RulesSuiteRunner, save_report
from .utils.config_manager import ConfigManager
from .utils.error_handler import ErrorCategory, ErrorHandler, handle_check_failure, handle_file_access_error
from .utils.firebase_config import FirebaseConfigValidator
from .utils.rules_validator import RulesValidator


logging.basicConfig(
    level=logging.WARNING,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


class RulesCheckCLI:
    """Wires configuration, validators and the emulator suite together"""

    def __init__(self, config_path: Optional[str] = None, log_directory: Optional[str] = None):
        self.config_manager = ConfigManager(config_path)
        self.config = self.config_manager.load_config()
        self.error_handler = ErrorHandler(
            log_directory=log_directory if log_directory is not None else self.config.log_directory,
            enable_console=False
        )

    def run_static_checks(self) -> List[CheckResult]:
        """Run the rules-file and JSON configuration checks"""
        results = RulesValidator(self.config.rules_file).run_all_checks()
        results.extend(
            FirebaseConfigValidator(self.config.firebase_config, self.config.indexes_file).run_all_checks()
        )
        for result in results:
            if not result.passed:
                handle_check_failure(self.error_handler, result)
        return results

    def run_emulator_suite(self, group: Optional[str] = None) -> SuiteReport:
        """Run the rules cases against the emulator

        Raises:
            EmulatorUnavailableError: If the emulator cannot be reached
            EmulatorError: If the rules cannot be uploaded
            OSError: If the rules file cannot be read
        """
        cases = cases_for_group(group)
        rules_file = self.config.rules_file
        try:
            env = initialize_test_environment(self.config)
        except EmulatorUnavailableError as e:
            self._record_unavailable(e)
            raise
        except EmulatorError as e:
            self.error_handler.log_error(
                f"Rules upload rejected: {e}",
                "RULES_UPLOAD_FAILED",
                ErrorCategory.EMULATOR,
                file_path=rules_file,
                exception=e
            )
            raise
        except OSError as e:
            handle_file_access_error(self.error_handler, rules_file, e)
            raise

        try:
            return RulesSuiteRunner(env, self.error_handler).run(cases)
        except EmulatorUnavailableError as e:
            self._record_unavailable(e)
            raise
        finally:
            env.cleanup()

    def _record_unavailable(self, error: EmulatorUnavailableError) -> None:
        self.error_handler.log_error(
            str(error),
            "EMULATOR_UNAVAILABLE",
            ErrorCategory.EMULATOR,
            context={'emulator_url': self.config.emulator_url}
        )

    def describe_cases(self, group: Optional[str] = None) -> List[Dict[str, Any]]:
        return [
            {
                'group': case.group,
                'name': case.name,
                'identity': case.identity,
                'operation': case.operation.value,
                'path': case.path,
                'expect': case.expect.value,
            }
            for case in cases_for_group(group)
        ]


def _echo_check(result: CheckResult) -> None:
    mark = "✓" if result.passed else "✗"
    click.echo(f"  {mark} {result.name}: {result.message}")


def _run_validate(cli_instance: RulesCheckCLI) -> bool:
    click.echo(f"Validating {cli_instance.config.rules_file}, "
               f"{cli_instance.config.firebase_config}, {cli_instance.config.indexes_file}")
    results = cli_instance.run_static_checks()
    for result in results:
        _echo_check(result)
    failed = [r for r in results if not r.passed]
    if failed:
        click.echo(f"✗ {len(failed)} of {len(results)} checks failed")
        return False
    click.echo(f"✓ All {len(results)} checks passed")
    return True


def _run_emulator(cli_instance: RulesCheckCLI, group: Optional[str], report: Optional[str]) -> bool:
    config = cli_instance.config
    click.echo(f"Running rules cases against {config.emulator_url} (project {config.project_id})")
    suite_report = cli_instance.run_emulator_suite(group)

    current_group = None
    for result in suite_report.results:
        if result.case.group != current_group:
            current_group = result.case.group
            click.echo(f"\n{current_group}")
        mark = "✓" if result.passed else "✗"
        click.echo(f"  {mark} {result.case.name}")
        if not result.passed:
            click.echo(f"      {result.message}")

    click.echo(f"\n  Cases passed: {suite_report.passed}/{suite_report.total}")
    click.echo(f"  Duration: {suite_report.total_duration:.2f}s")
    if report:
        click.echo(f"  Report saved: {save_report(suite_report, report)}")
    return suite_report.success


@click.group()
@click.option('--config', '-c', help='Path to configuration file')
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose logging')
@click.pass_context
def cli(ctx, config, verbose):
    """Asset Rules - check the Firestore security rules of the asset manager"""

    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    ctx.ensure_object(dict)
    if 'cli' not in ctx.obj:
        ctx.obj['cli'] = RulesCheckCLI(config)


@cli.command()
@click.pass_context
def validate(ctx):
    """Run the static checks over the rules file and JSON configs"""

    try:
        if not _run_validate(ctx.obj['cli']):
            sys.exit(1)
    except Exception as e:
        click.echo(f"✗ Error during validation: {str(e)}")
        sys.exit(1)


@cli.command('emulator-test')
@click.option('--group', '-g', type=click.Choice(GROUPS), help='Run only one group of cases')
@click.option('--report', '-r', help='Save the suite report to the specified JSON file')
@click.pass_context
def emulator_test(ctx, group, report):
    """Run the rules cases against a running Firestore emulator"""

    try:
        if not _run_emulator(ctx.obj['cli'], group, report):
            sys.exit(1)
    except EmulatorUnavailableError as e:
        click.echo(f"✗ {e}")
        click.echo("Start it with 'firebase emulators:start --only firestore'")
        sys.exit(1)
    except (EmulatorError, OSError) as e:
        click.echo(f"✗ Error running rules cases: {str(e)}")
        sys.exit(1)


@cli.command()
@click.option('--report', '-r', help='Save the suite report to the specified JSON file')
@click.pass_context
def check(ctx, report):
    """Run the static checks, then the emulator cases"""

    cli_instance = ctx.obj['cli']
    try:
        static_ok = _run_validate(cli_instance)
        click.echo()
        emulator_ok = _run_emulator(cli_instance, None, report)
    except EmulatorUnavailableError as e:
        click.echo(f"✗ {e}")
        sys.exit(1)
    except Exception as e:
        click.echo(f"✗ Error during checks: {str(e)}")
        sys.exit(1)

    if not (static_ok and emulator_ok):
        sys.exit(1)


@cli.command('cases')
@click.option('--group', '-g', type=click.Choice(GROUPS), help='Show only one group of cases')
@click.pass_context
def list_cases(ctx, group):
    """List the rules cases and their expected verdicts"""

    for entry in ctx.obj['cli'].describe_cases(group):
        click.echo(
            f"[{entry['group']}] {entry['expect'].upper():7} {entry['operation']:6} "
            f"{entry['path']} as {entry['identity']} - {entry['name']}"
        )


@cli.command()
@click.argument('output_path', default='asset_rules.json')
@click.option('--format', type=click.Choice(['json', 'yaml']), default='json', help='Configuration file format')
@click.pass_context
def init_config(ctx, output_path, format):
    """Generate configuration template file"""

    cli_instance = ctx.obj['cli']

    if format == 'yaml' and not output_path.endswith(('.yml', '.yaml')):
        output_path = output_path.replace('.json', '.yml')
    elif format == 'json' and not output_path.endswith('.json'):
        output_path = output_path.replace('.yml', '.json').replace('.yaml', '.json')

    try:
        cli_instance.config_manager.save_config_template(output_path)
        click.echo(f"✓ Configuration template generated: {output_path}")
    except Exception as e:
        cli_instance.error_handler.log_error(
            f"Failed to generate config template: {str(e)}",
            "CONFIG_TEMPLATE_ERROR",
            file_path=output_path,
            exception=e
        )
        click.echo(f"✗ Error generating config template: {str(e)}")
        sys.exit(1)


def main():
    """Main entry point for the CLI"""
    cli()


if __name__ == '__main__':
    main()
