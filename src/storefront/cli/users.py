"""Account management CLI commands."""

import asyncio

import typer
from rich.console import Console
from rich.table import Table

from storefront.database import get_session_context
from storefront.services.accounts import AccountService, SQLAccountStore, normalize_email
from storefront.services.auth import create_token
from storefront.services.errors import ServiceError

console = Console()
app = typer.Typer(help="Account management commands")


@app.command("list")
def list_users():
    """List all accounts."""

    async def _list():
        async with get_session_context() as session:
            accounts = await AccountService(SQLAccountStore(session)).list_accounts()

            table = Table(title="Accounts")
            table.add_column("ID", style="cyan")
            table.add_column("Username", style="magenta")
            table.add_column("Email", style="green")
            table.add_column("Phone")
            table.add_column("Last login", style="dim")

            for account in accounts:
                last_login = (
                    account.last_login_at.strftime("%Y-%m-%d %H:%M")
                    if account.last_login_at
                    else "-"
                )
                table.add_row(
                    str(account.id), account.username, account.email, account.phone, last_login
                )

            console.print(table)

    asyncio.run(_list())


@app.command("create")
def create_user(
    email: str = typer.Argument(..., help="Account email"),
    username: str = typer.Option(..., "--username", "-u", help="Display name"),
    phone: str = typer.Option(..., "--phone", "-p", help="Phone number"),
    password: str = typer.Option(
        ..., prompt=True, hide_input=True, confirmation_prompt=True, help="Account password"
    ),
):
    """Create a new account."""

    async def _create():
        async with get_session_context() as session:
            service = AccountService(SQLAccountStore(session))
            try:
                result = await service.register(
                    username=username,
                    email=email,
                    phone=phone,
                    password=password,
                    password_confirmation=password,
                )
            except ServiceError as e:
                console.print(f"[red]Error:[/red] {e.message}")
                raise typer.Exit(1) from e

            account = result.data["account"]
            console.print(f"[green]Created account:[/green] {account.email} (id={account.id})")

    asyncio.run(_create())


@app.command("issue-token")
def issue_token(email: str = typer.Argument(..., help="Account email")):
    """Issue a session token for an account without a password."""

    async def _issue():
        async with get_session_context() as session:
            account = await SQLAccountStore(session).find_by_email(normalize_email(email))

            if not account:
                console.print(f"[red]Error:[/red] Account {email} not found")
                raise typer.Exit(1)

            console.print(f"[green]Token:[/green] {create_token(account.id)}")  # type: ignore[arg-type]

    asyncio.run(_issue())
