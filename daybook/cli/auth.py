"""Account commands for daybook CLI.

Handles sign-up, sign-in (password or magic link), sign-out,
password reset and email change.
"""

from typing import Optional

import click
from rich.panel import Panel

from daybook.cli.common import console, get_settings, open_sessions, report_error
from daybook.errors import DaybookError


def _ensure_config():
    """Load settings, creating a template config on first use.

    Exits if the backend is missing required keys.
    """
    from daybook.config import create_template_config, load_config, validate_config

    try:
        config = load_config()
    except DaybookError as e:
        report_error(e)

    if config is None:
        config_path = create_template_config()
        console.print(Panel(
            f"[yellow]Configuration file created at:[/yellow]\n"
            f"[cyan]{config_path}[/cyan]\n\n"
            "[dim]Using the local backend. Set [cyan]backend.mode = \"supabase\"[/cyan]\n"
            "in this file to sync with a hosted Supabase project.[/dim]",
            title="[bold]Configuration Created[/bold]",
            border_style="yellow",
        ))
        config = load_config()

    missing_keys = validate_config(config)
    if missing_keys:
        console.print(Panel(
            "[red]Missing required configuration keys:[/red]\n\n"
            + "\n".join(f"  • {key}" for key in missing_keys)
            + "\n\n[dim]Edit your daybook config.toml to add these values.[/dim]",
            title="[bold red]Configuration Error[/bold red]",
            border_style="red",
        ))
        raise SystemExit(1)

    return get_settings()


def _print_token(kind: str, email: str, token: Optional[str], command: str) -> None:
    if token:
        # The local backend has no mailer, so the code is shown directly
        console.print(Panel(
            f"Your {kind} code: [bold cyan]{token}[/bold cyan]\n\n"
            f"[dim]Run [cyan]daybook {command} --email {email} --token {token}[/cyan]\n"
            "The code is valid for one hour.[/dim]",
            title=f"[bold]{kind.title()} Code[/bold]",
            border_style="cyan",
        ))
    else:
        console.print(Panel(
            f"[green]✓[/green] Check [cyan]{email}[/cyan] for a {kind} link\n\n"
            f"[dim]Paste the code from the email with\n"
            f"[cyan]daybook {command} --email {email} --token CODE[/cyan][/dim]",
            title="[bold green]Email Sent[/bold green]",
            border_style="green",
        ))


def _signed_in_panel(email: Optional[str]) -> None:
    console.print(Panel(
        f"[green]✓[/green] Signed in as [cyan]{email}[/cyan]\n\n"
        "[dim]Session stored. Run [cyan]daybook log[/cyan] to record a day.[/dim]",
        title="[bold green]Login Successful[/bold green]",
        border_style="green",
    ))


@click.command()
@click.option("--email", prompt=True, help="Account email.")
@click.password_option(help="Account password (at least 6 characters).")
def signup(email: str, password: str) -> None:
    """Create an account.

    \b
    Examples:
      daybook signup
      daybook signup --email me@example.com
    """
    settings = _ensure_config()
    sessions = open_sessions(settings)

    try:
        session = sessions.backend.sign_up(email, password)
        if session is None:
            console.print(Panel(
                f"[green]✓[/green] Account created for [cyan]{email}[/cyan]\n\n"
                "[dim]Confirm your email address, then run [cyan]daybook login[/cyan].[/dim]",
                title="[bold green]Check Your Email[/bold green]",
                border_style="green",
            ))
            return
        sessions.sign_in(session)
        _signed_in_panel(session.email)
    except DaybookError as e:
        report_error(e, "Sign Up Failed")


@click.command()
@click.option("--email", prompt=True, help="Account email.")
@click.option("--magic-link", is_flag=True, default=False, help="Sign in with an emailed code instead of a password.")
@click.option("--token", default=None, help="Code from a magic link email.")
def login(email: str, magic_link: bool, token: Optional[str]) -> None:
    """Sign in and store the session.

    \b
    Examples:
      daybook login --email me@example.com
      daybook login --email me@example.com --magic-link
      daybook login --email me@example.com --token CODE
    """
    settings = _ensure_config()
    sessions = open_sessions(settings)

    try:
        if token:
            session = sessions.backend.verify_magic_link(email, token)
        elif magic_link:
            code = sessions.backend.send_magic_link(email)
            _print_token("sign-in", email, code, "login")
            return
        else:
            password = click.prompt("Password", hide_input=True)
            session = sessions.backend.sign_in_with_password(email, password)

        sessions.sign_in(session)
        _signed_in_panel(session.email)
    except DaybookError as e:
        report_error(e, "Login Failed")


@click.command()
def logout() -> None:
    """Sign out and clear the stored session."""
    settings = get_settings()
    sessions = open_sessions(settings)

    if sessions.current() is None:
        console.print("[yellow]Not signed in. Nothing to logout from.[/yellow]")
        return

    try:
        sessions.sign_out()
    except DaybookError as e:
        report_error(e, "Logout Failed")

    console.print(Panel(
        "[green]✓[/green] Session cleared\n\n"
        "[dim]Your journal is kept. Run [cyan]daybook login[/cyan] to sign in again.[/dim]",
        title="[bold green]Logout Successful[/bold green]",
        border_style="green",
    ))


@click.command()
def whoami() -> None:
    """Show the signed-in account."""
    settings = get_settings()
    sessions = open_sessions(settings)

    session = sessions.current()
    if session is None:
        console.print("[yellow]Not signed in.[/yellow] Run [cyan]daybook login[/cyan].")
        raise SystemExit(1)

    console.print(Panel(
        f"[bold]Email:[/bold] {session.email or '-'}\n"
        f"[bold]User ID:[/bold] {session.user_id}\n"
        f"[bold]Backend:[/bold] {settings.backend.mode}\n"
        f"[bold]Token expires:[/bold] {session.expires_at:%Y-%m-%d %H:%M}",
        title="[bold]Account[/bold]",
        border_style="cyan",
    ))


@click.command(name="reset-password")
@click.option("--email", prompt=True, help="Account email.")
@click.option("--token", default=None, help="Code from the reset email.")
def reset_password(email: str, token: Optional[str]) -> None:
    """Reset a forgotten password.

    Run once without --token to request a reset code, then again
    with the code to choose a new password.
    """
    settings = _ensure_config()
    sessions = open_sessions(settings)

    try:
        if not token:
            code = sessions.backend.send_password_reset(email)
            _print_token("password reset", email, code, "reset-password")
            return

        new_password = click.prompt("New password", hide_input=True, confirmation_prompt=True)
        session = sessions.backend.reset_password(email, token, new_password)
        sessions.sign_in(session)
    except DaybookError as e:
        report_error(e, "Password Reset Failed")

    console.print(Panel(
        "[green]✓[/green] Password updated\n\n"
        f"[dim]Signed in as [cyan]{email}[/cyan].[/dim]",
        title="[bold green]Password Reset[/bold green]",
        border_style="green",
    ))


@click.command(name="change-email")
@click.argument("new_email")
def change_email(new_email: str) -> None:
    """Change the account email to NEW_EMAIL."""
    settings = get_settings()
    sessions = open_sessions(settings)

    try:
        session = sessions.require()
        sessions.backend.change_email(session, new_email)
        if settings.backend.mode == "local":
            sessions.sign_in(session.model_copy(update={"email": new_email.strip().lower()}))
            message = f"[green]✓[/green] Email changed to [cyan]{new_email}[/cyan]"
        else:
            message = (
                f"[green]✓[/green] Confirmation sent to [cyan]{new_email}[/cyan]\n\n"
                "[dim]The change takes effect once the link is followed.[/dim]"
            )
    except DaybookError as e:
        report_error(e, "Email Change Failed")

    console.print(Panel(message, title="[bold green]Email Change[/bold green]", border_style="green"))
