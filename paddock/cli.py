"""Command line interface for running the paddock provisioning worker."""

from __future__ import annotations

import asyncio
import logging
from typing import List, Optional

import typer
from pydantic import ValidationError

from paddock import (
    AccountRequestStatus,
    CreateAccountRequestInput,
    ProvisioningWorker,
    get_organizations_client,
    get_repository,
)
from paddock.config import load_config

app = typer.Typer(help="CLI for the paddock account provisioning worker")

# Command groups
worker_app = typer.Typer(help="Commands for running the provisioning worker")
request_app = typer.Typer(help="Commands for managing account requests")

app.add_typer(worker_app, name="worker")
app.add_typer(request_app, name="request")


@app.callback()
def main() -> None:
    """Paddock CLI entry point."""
    pass


def _build_worker(interval: Optional[float]) -> ProvisioningWorker:
    config = load_config()
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    )
    worker = ProvisioningWorker.from_config(
        get_organizations_client(config=config),
        config=config,
        repository=get_repository(),
    )
    if interval is not None:
        worker.interval = interval
    return worker


@worker_app.command("run")
def worker_run(
    interval: Optional[float] = typer.Option(
        None, help="Seconds between ticks (default: from config)"
    ),
    lifespan: Optional[float] = typer.Option(
        None, help="Seconds to run before exiting (default: run indefinitely)"
    ),
) -> None:
    """
    Run the provisioning worker.

    Polls the configured repository and advances every pending account request
    one phase per tick until stopped or the lifespan expires.

    Example:
        paddock worker run
        paddock worker run --interval 5 --lifespan 300
    """
    worker = _build_worker(interval)
    typer.echo(f"Starting provisioning worker (interval: {worker.interval}s)")
    asyncio.run(worker.run(lifespan=lifespan))


@worker_app.command("tick")
def worker_tick() -> None:
    """
    Run a single reconciliation pass and print what changed.

    The mock account creation and in-memory guardrail backends live only as
    long as this process, so repeated ticks against a persistent database fail
    requests in CREATING or GUARDRAILING. Use `paddock worker run` with mock
    backends.
    """
    worker = _build_worker(None)
    result = asyncio.run(worker.process_once())
    typer.echo(
        f"advanced={len(result.advanced)} updated={len(result.updated)} "
        f"unchanged={len(result.unchanged)} failed={len(result.failed)} "
        f"stuck={len(result.stuck)} skipped={len(result.skipped)}"
    )


@request_app.command("create")
def request_create(
    account_name: str,
    owner_email: str,
    purpose: str = typer.Option("development", help="development, staging or production"),
    region: str = typer.Option("us-east-1", help="Primary AWS region"),
    user: str = typer.Option("cli", help="Requesting user id"),
    budget: Optional[float] = typer.Option(None, help="Monthly budget in USD"),
    threshold: Optional[int] = typer.Option(None, help="Budget alert threshold (%)"),
    allowed_region: Optional[List[str]] = typer.Option(
        None, help="Allowed region, repeatable"
    ),
) -> None:
    """
    Queue a new account request in REQUESTED status.

    Example:
        paddock request create sandbox-team-a owner@example.com --purpose staging
    """
    try:
        data = CreateAccountRequestInput(
            account_name=account_name,
            owner_email=owner_email,
            purpose=purpose,
            primary_region=region,
            budget_amount_usd=budget,
            budget_threshold_percent=threshold,
            allowed_regions=allowed_region or None,
        )
    except ValidationError as exc:
        for error in exc.errors():
            field = ".".join(str(part) for part in error["loc"])
            typer.secho(f"{field}: {error['msg']}", fg=typer.colors.RED)
        raise typer.Exit(code=1)

    repo = get_repository()
    request = asyncio.run(repo.create(data, user_id=user))
    typer.echo(f"{request.id}\t{request.status.value}")


@request_app.command("list")
def request_list(
    user: Optional[str] = typer.Option(None, help="Only show this user's requests"),
    status: Optional[AccountRequestStatus] = typer.Option(
        None, case_sensitive=False, help="Only show requests in this status"
    ),
) -> None:
    """
    List account requests, newest first.

    Example:
        paddock request list --status CREATING
        # Output: req-1712345678901-1    CREATING    sandbox-team-a
    """
    repo = get_repository()
    requests, _ = asyncio.run(repo.list_requests(user_id=user, status=status))
    if not requests:
        typer.echo("No requests found")
        return
    for req in requests:
        typer.echo(f"{req.id}\t{req.status.value}\t{req.account_name}")


@request_app.command("show")
def request_show(request_id: str) -> None:
    """Show the provisioning details of one account request."""
    repo = get_repository()
    req = asyncio.run(repo.get(request_id))
    if req is None:
        typer.echo("Request not found")
        raise typer.Exit(code=1)
    typer.echo(f"Request {req.id}: {req.status.value}")
    typer.echo(f"Account: {req.account_name} <{req.owner_email}> ({req.purpose})")
    for label, value in (
        ("AWS request id", req.aws_request_id),
        ("AWS account id", req.aws_account_id),
        ("Guardrail claim", req.guardrail_claim_name),
        ("Error", req.error_message),
        ("Completed", req.completed_at),
    ):
        if value:
            typer.echo(f"{label}: {value}")


@request_app.command("counts")
def request_counts() -> None:
    """Show how many requests are in each status."""
    repo = get_repository()
    counts = asyncio.run(repo.status_counts())
    for status, total in counts.items():
        typer.echo(f"{status.value}\t{total}")


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    app()
