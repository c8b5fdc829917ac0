"""
CLI interface for proofrelay.

Provides commands to run the submission loop, submit a single proof,
query a job and inspect the ledger.
"""


from pathlib import Path

import click

from proofrelay import __version__


@click.group()
@click.version_option(version=__version__, prog_name="proofrelay")
@click.option(
    "--config", "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Path to config.yaml (default: $PROOFRELAY_HOME/config.yaml)",
)
@click.pass_context
def main(ctx, config_path):
    """
    proofrelay - Submit proofs to a verification relay and track them.
    """
    from proofrelay.config import load_config

    ctx.ensure_object(dict)
    try:
        ctx.obj["config"] = load_config(config_path)
    except Exception as e:
        # init works without a config; other commands check ctx.obj
        ctx.obj["config_error"] = str(e)


def _require_config(ctx):
    if "config" not in ctx.obj:
        click.echo(f"✗ Config not loaded: {ctx.obj.get('config_error', 'Unknown error')}", err=True)
        click.echo("Run 'proofrelay init' to create a configuration file.", err=True)
        raise SystemExit(1)
    return ctx.obj["config"]


def _setup_logging(config) -> None:
    from proofrelay.utils import setup_logging

    setup_logging(
        log_level=config.log_level,
        log_format=config.log_format,
        log_file=Path(config.log_file) if config.log_file else None,
    )


def _make_client(config):
    from proofrelay.errors import ConfigError
    from proofrelay.relay import RelayClient

    try:
        api_key = config.get_api_key()
    except ConfigError as e:
        click.echo(f"✗ {e}", err=True)
        raise SystemExit(1)
    return RelayClient(config.base_url, api_key, timeout=config.request_timeout)


@main.command("init")
@click.option("--force", is_flag=True, help="Overwrite existing configuration")
def init(force: bool):
    """Initialize proofrelay configuration."""
    from proofrelay.config import RelayConfig, get_proofrelay_home
    import yaml

    home = get_proofrelay_home()
    if not home.exists():
        home.mkdir(parents=True)

    cfg_path = home / "config.yaml"
    if cfg_path.exists() and not force:
        click.echo(f"Config already exists at {cfg_path}. Use --force to overwrite.", err=True)
        raise SystemExit(1)

    default_cfg = RelayConfig(env_file=str(home / ".env")).to_dict()
    cfg_path.write_text(yaml.safe_dump(default_cfg, sort_keys=False))

    env_path = home / ".env"
    if not env_path.exists():
        env_path.write_text(f"# {default_cfg['api_key_env']}=...\n")

    click.echo(f"Initialized proofrelay config at {cfg_path}")
    click.echo(f"Set {default_cfg['api_key_env']} in {env_path} before running.")


@main.command("run")
@click.option("--attempts", type=int, help="Number of proofs to generate and submit")
@click.option(
    "--policy",
    type=click.Choice(["strict", "permissive"]),
    help="Terminal status set (permissive also stops at IncludedInBlock)",
)
@click.option("--seed", type=int, help="Seed for circuit input generation")
@click.option("--attempt-delay", type=float, help="Seconds to wait between attempts")
@click.option("--poll-timeout", type=float, help="Seconds to wait for a job before recording Timeout (0 = forever)")
@click.pass_context
def run(ctx, attempts, policy, seed, attempt_delay, poll_timeout):
    """
    Generate, submit and track proofs.

    Examples:

        proofrelay run

        proofrelay run --attempts 3 --policy permissive

        proofrelay run --attempts 100 --attempt-delay 60 --seed 42
    """
    from proofrelay.errors import ConfigError
    from proofrelay.orchestrator import Orchestrator
    from proofrelay.utils import print_banner, print_error, print_info, print_success, print_warning

    config = _require_config(ctx)
    if attempts is not None:
        config.total_attempts = attempts
    if policy is not None:
        config.terminal_policy = policy
    if seed is not None:
        config.seed = seed
    if attempt_delay is not None:
        config.attempt_delay = attempt_delay
    if poll_timeout is not None:
        config.poll_timeout = poll_timeout

    try:
        config.validate()
        _setup_logging(config)
        orchestrator = Orchestrator.from_config(config)
    except ConfigError as e:
        print_error(str(e))
        raise SystemExit(1)

    with orchestrator.client:
        report = orchestrator.provider.validate()
        for warning in report["warnings"]:
            print_warning(warning)
        if report["errors"]:
            for error in report["errors"]:
                print_error(error)
            raise SystemExit(1)

        print_banner(f"proofrelay: {config.total_attempts} attempt(s), {config.terminal_policy} policy")
        print_info(f"Ledger: {config.ledger_path}")
        summary = orchestrator.run(config.total_attempts)

    counts = ", ".join(f"{status}={n}" for status, n in sorted(summary.counts().items()))
    print_success(f"{summary.total} attempt(s) recorded in {config.ledger_path}" + (f" ({counts})" if counts else ""))


@main.command("submit")
@click.argument("proof", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("public", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--no-poll", is_flag=True, help="Print the job id and exit without polling")
@click.option("--policy", type=click.Choice(["strict", "permissive"]), help="Terminal status set")
@click.pass_context
def submit(ctx, proof: Path, public: Path, no_poll: bool, policy):
    """
    Submit an existing proof.json / public.json pair.

    Uses the configured verification key. Nothing is written to the ledger.
    """
    from proofrelay.errors import ConfigError, SubmissionError
    from proofrelay.orchestrator import load_verification_key
    from proofrelay.poller import JobPoller
    from proofrelay.schemas import ProofArtifact

    config = _require_config(ctx)
    _setup_logging(config)

    try:
        vk = load_verification_key(config.vkey_path)
        artifact = ProofArtifact.from_files(proof, public)
    except (ConfigError, ValueError) as e:
        click.echo(f"✗ {e}", err=True)
        raise SystemExit(1)

    with _make_client(config) as client:
        try:
            job_id, _ = client.submit(artifact, vk)
        except SubmissionError as e:
            click.echo(f"✗ {e}", err=True)
            if e.raw:
                click.echo(e.raw, err=True)
            raise SystemExit(1)

        click.echo(f"Job ID: {job_id}")
        if no_poll:
            return

        poller = JobPoller(
            client,
            terminal_policy=policy or config.terminal_policy,
            poll_interval=config.poll_interval,
            empty_status_interval=config.empty_status_interval,
            timeout=config.poll_timeout,
        )
        result = poller.poll(job_id)

    click.echo(f"Status: {result.status}")
    click.echo(f"TxHash: {result.tx_hash or 'N/A'}")


@main.command("status")
@click.argument("job_id")
@click.pass_context
def status(ctx, job_id: str):
    """Query a job's current status once."""
    from proofrelay.errors import TransientError

    config = _require_config(ctx)

    with _make_client(config) as client:
        try:
            response = client.get_status(job_id)
        except TransientError as e:
            click.echo(f"✗ {e}", err=True)
            raise SystemExit(1)

    click.echo(f"Job ID: {job_id}")
    click.echo(f"Status: {response.status or '(empty)'}")
    click.echo(f"TxHash: {response.tx_hash or 'N/A'}")


# =============================================================================
# Ledger Commands - read-only views of the CSV ledger
# =============================================================================

@main.group("ledger")
def ledger_group():
    """Inspect the submission ledger."""
    pass


@ledger_group.command("show")
@click.option("--last", "last_n", type=int, default=20, show_default=True, help="Number of rows to show (0 = all)")
@click.pass_context
def ledger_show(ctx, last_n: int):
    """Show the most recent ledger rows."""
    from rich.table import Table

    from proofrelay.ledger import read_records
    from proofrelay.utils import console

    config = _require_config(ctx)
    records = list(read_records(config.ledger_path))
    if not records:
        click.echo(f"No records in {config.ledger_path}")
        return
    if last_n > 0:
        records = records[-last_n:]

    table = Table(title=str(config.ledger_path))
    for column in ("Timestamp", "Proof", "JobID", "TxHash", "Status"):
        table.add_column(column)
    for r in records:
        table.add_row(r.timestamp.isoformat(timespec="seconds"), str(r.attempt_n), r.job_id, r.tx_hash, r.status)
    console.print(table)


@ledger_group.command("stats")
@click.pass_context
def ledger_stats(ctx):
    """Count ledger rows by status."""
    from collections import Counter

    from proofrelay.ledger import read_records

    config = _require_config(ctx)
    records = list(read_records(config.ledger_path))
    if not records:
        click.echo(f"No records in {config.ledger_path}")
        return

    by_status = Counter(r.status or "(none)" for r in records)
    click.echo(f"Total: {len(records)}")
    for status_name, count in by_status.most_common():
        click.echo(f"  {status_name}: {count}")
    with_tx = sum(1 for r in records if r.tx_hash != "N/A")
    click.echo(f"With tx hash: {with_tx}")


if __name__ == "__main__":
    main()
