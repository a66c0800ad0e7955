#!/usr/bin/env python3
"""
SEAP command line client.

Every screen of the web frontend is a subcommand here. Each command checks
the route guard for its view, fetches fresh data, renders it, and reports
failures as notifications.

Usage:
    seap login --email me@example.com
    seap campaigns list
    seap admin approve 42 --comment "Looks good"
"""

import argparse
import asyncio
import getpass
import sys
from datetime import datetime
from pathlib import Path
from typing import Callable, Dict, List, Optional

from loguru import logger
from rich.console import Console
from rich.table import Table

from .auth import AccessStatus, AuthState, Role, View, navigation_for
from .config import load_config
from .context import SEAPContext
from .errors import ConfigError
from .notify import Notifier
from .api import make_draft


EXIT_OK = 0
EXIT_ERROR = 1
EXIT_REDIRECT = 2


def setup_logging(level: str):
    """Route loguru output to stderr at the given level."""
    logger.remove()
    logger.add(
        sys.stderr,
        level=level,
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | {message}",
    )


def _parse_datetime(value: str) -> datetime:
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not an ISO date/time: {value}")


def _fmt_date(value) -> str:
    if value is None:
        return "-"
    if isinstance(value, datetime):
        return value.strftime("%Y-%m-%d %H:%M")
    return str(value)[:16].replace("T", " ")


class CommandRunner:
    """Runs one parsed command against an application context."""

    def __init__(self, ctx: SEAPContext, notifier: Notifier, console: Console):
        self.ctx = ctx
        self.notifier = notifier
        self.console = console
        self.redirected = False

        self.handlers: Dict[str, Callable] = {
            "login": self.login,
            "register": self.register,
            "verify": self.verify,
            "resend-otp": self.resend_otp,
            "logout": self.logout,
            "whoami": self.whoami,
            "health": self.health,
            "dashboard": self.dashboard,
            "profile": self.profile,
            "campaigns": self.campaigns,
            "analytics": self.analytics,
            "admin": self.admin,
            "simulate": self.simulate,
            "awareness": self.awareness,
        }

    async def run(self, args: argparse.Namespace) -> int:
        handler = self.handlers[args.command]
        with self.notifier.guard():
            await handler(args)

        if self.notifier.error_count:
            return EXIT_ERROR
        if self.redirected:
            return EXIT_REDIRECT
        return EXIT_OK

    def _enter(self, view: View) -> bool:
        """Run the route guard; report and return False on redirect."""
        decision = self.ctx.guard.check(view)
        if decision.status is AccessStatus.ALLOW:
            return True

        self.redirected = True
        if decision.status is AccessStatus.PENDING:
            self.notifier.info("Session is still loading")
        elif decision.redirect_to == "/login":
            self.notifier.info("Please log in first (seap login)")
        else:
            self.notifier.info("Admin access required")
        logger.debug(f"{view.value}: {decision.status.value} -> {decision.redirect_to}")
        return False

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    async def login(self, args):
        email = args.email or input("Email: ").strip()
        password = args.password or getpass.getpass("Password: ")

        result = await self.ctx.store.login(email, password)
        if not result.otp_required:
            self.notifier.success("Login successful!")
            return

        self.notifier.info("Please verify your email with OTP")
        if args.no_prompt:
            self.notifier.info(f"Run: seap verify --email {email} --code <code>")
            return
        code = input("OTP code: ").strip()
        await self.ctx.store.verify_otp(email, code)
        self.notifier.success("Email verified!")

    async def register(self, args):
        email = args.email or input("Email: ").strip()
        password = args.password or getpass.getpass("Password: ")

        data = await self.ctx.store.register(email, password, Role(args.role))
        if data.get("otp"):
            self.notifier.success(f"Registration successful! OTP (dev): {data['otp']}")
        else:
            self.notifier.success("Registration successful! Please verify your email with OTP.")
        self.notifier.info(f"Next: seap verify --email {email} --code <code>  (or seap login)")

    async def verify(self, args):
        identity = await self.ctx.store.verify_otp(args.email, args.code)
        self.notifier.success(f"Email verified! Logged in as {identity.email}")

    async def resend_otp(self, args):
        data = await self.ctx.store.resend_otp(args.email)
        message = data.get("message", "OTP sent")
        if data.get("otp"):
            message += f" (dev code: {data['otp']})"
        self.notifier.success(message)

    async def logout(self, args):
        self.ctx.store.logout()
        self.notifier.success("Logged out")

    async def whoami(self, args):
        store = self.ctx.store
        if store.state is not AuthState.AUTHENTICATED:
            self.notifier.info("Not logged in")
            return

        identity = store.identity
        self.console.print(f"[bold]{identity.email}[/bold] ({identity.role.value}), id {identity.id}")
        expires = store.session.expires_at()
        if expires:
            self.console.print(f"Credential expires {expires:%Y-%m-%d %H:%M} UTC")

        nav = " | ".join(label for label, _ in navigation_for(identity))
        self.console.print(f"[dim]{nav}[/dim]")

    async def health(self, args):
        data = await self.ctx.simulation.health()
        self.notifier.success(f"Server is {data.status}")

    # ------------------------------------------------------------------
    # User views
    # ------------------------------------------------------------------

    async def dashboard(self, args):
        if not self._enter(View.DASHBOARD):
            return
        stats = (await self.ctx.analytics.get()).stats

        table = Table(title="Dashboard")
        for column in ("Total Campaigns", "Approved", "Total Clicks", "Conversion Rate"):
            table.add_column(column, justify="right")
        table.add_row(
            str(stats.total_campaigns), str(stats.approved_campaigns),
            str(stats.total_clicks), f"{stats.conversion_rate:.1f}%",
        )
        self.console.print(table)

        actions = ["seap campaigns create", "seap campaigns list", "seap analytics"]
        if self.ctx.store.is_admin:
            actions.append("seap admin campaigns")
        self.console.print("[dim]Next: " + " | ".join(actions) + "[/dim]")

    async def profile(self, args):
        if not self._enter(View.PROFILE):
            return

        if args.action == "show":
            profile = await self.ctx.profile.get()
            self.console.print(f"[bold]{profile.email}[/bold]  role: {profile.role}  id: {profile.id}")
            return

        password = confirm = None
        if args.change_password:
            password = getpass.getpass("New password: ")
            confirm = getpass.getpass("Confirm password: ")
        message = await self.ctx.profile.update(email=args.email, password=password, confirm_password=confirm)
        self.notifier.success(message)

    async def campaigns(self, args):
        api = self.ctx.campaigns

        if args.action == "list":
            if not self._enter(View.CAMPAIGNS):
                return
            self._campaign_table(await api.list(), "My Campaigns")

        elif args.action == "show":
            if not self._enter(View.CAMPAIGNS):
                return
            campaign = await api.get(args.id)
            self._campaign_table([campaign], campaign.title)
            if campaign.description:
                self.console.print(campaign.description)
            self.console.print(f"[dim]Email text:[/dim]\n{campaign.email_text}")
            if campaign.status.value == "approved" and campaign.tracking_token:
                self.console.print(f"Simulation link: {self.ctx.config.simulation_link(campaign.tracking_token)}")

        elif args.action == "create":
            if not self._enter(View.CAMPAIGN_NEW):
                return
            draft = make_draft(args.title, args.email_text, args.description, args.landing_url, args.expiry)
            campaign = await api.create(draft)
            self.notifier.success(f"Campaign created (id {campaign.id}), awaiting approval")

        elif args.action == "update":
            if not self._enter(View.CAMPAIGN_EDIT):
                return
            current = await api.get(args.id)
            draft = make_draft(
                args.title if args.title is not None else current.title,
                args.email_text if args.email_text is not None else current.email_text,
                args.description if args.description is not None else current.description,
                args.landing_url if args.landing_url is not None else current.landing_page_url,
                None if args.clear_expiry else (args.expiry or current.expiry_date),
            )
            self.notifier.success(await api.update(args.id, draft))

        elif args.action == "delete":
            if not self._enter(View.CAMPAIGNS):
                return
            self.notifier.success(await api.delete(args.id))

    async def analytics(self, args):
        if not self._enter(View.ANALYTICS):
            return
        data = await self.ctx.analytics.get()
        stats = data.stats

        table = Table(title="My Analytics")
        table.add_column("Metric")
        table.add_column("Value", justify="right")
        for label, value in [
            ("Campaigns", stats.total_campaigns),
            ("Approved", stats.approved_campaigns),
            ("Pending", stats.pending_campaigns),
            ("Rejected", stats.rejected_campaigns),
            ("Clicks", stats.total_clicks),
            ("Submissions", stats.total_submissions),
            ("Awareness views", stats.total_awareness_views),
            ("Conversion rate", f"{stats.conversion_rate:.1f}%"),
        ]:
            table.add_row(label, str(value))
        self.console.print(table)

        if data.campaigns:
            per_campaign = Table(title="Per Campaign")
            for column in ("Title", "Status", "Clicks", "Submissions", "Awareness"):
                per_campaign.add_column(column)
            for c in data.campaigns:
                per_campaign.add_row(c.title, c.status, str(c.clicks), str(c.submissions), str(c.awareness_views))
            self.console.print(per_campaign)

        self._timeline(data.timeline)

    # ------------------------------------------------------------------
    # Admin views
    # ------------------------------------------------------------------

    async def admin(self, args):
        api = self.ctx.admin
        action = args.action

        if action in ("campaigns", "approve", "reject"):
            if not self._enter(View.ADMIN_CAMPAIGNS):
                return
            if action == "campaigns":
                campaigns = await api.campaigns()
                if args.status:
                    campaigns = [c for c in campaigns if c.status.value == args.status]
                self._campaign_table(campaigns, "All Campaigns", show_owner=True)
            elif action == "approve":
                self.notifier.success(await api.approve_campaign(args.id, args.comment or ""))
            else:
                self.notifier.success(await api.reject_campaign(args.id, args.comment))

        elif action in ("users", "delete-user"):
            if not self._enter(View.ADMIN_USERS):
                return
            if action == "users":
                table = Table(title="Users")
                for column in ("ID", "Email", "Role", "Verified", "Created"):
                    table.add_column(column)
                for u in await api.users():
                    table.add_row(str(u.id), u.email, u.role, "yes" if u.email_verified else "no", _fmt_date(u.created_at))
                self.console.print(table)
            else:
                self.notifier.success(await api.delete_user(args.id))

        elif action == "audit-logs":
            if not self._enter(View.ADMIN_AUDIT_LOGS):
                return
            table = Table(title="Audit Logs")
            for column in ("When", "Admin", "Action", "Resource", "Details"):
                table.add_column(column)
            for entry in await api.audit_logs():
                resource = f"{entry.resource_type} {entry.resource_id or ''}".strip()
                table.add_row(_fmt_date(entry.created_at), entry.admin_email or str(entry.admin_id or ""), entry.action, resource, entry.details)
            self.console.print(table)

        elif action == "leaderboard":
            if not self._enter(View.ADMIN_LEADERBOARD):
                return
            table = Table(title="Leaderboard")
            for column in ("#", "Email", "Campaigns", "Clicks", "Conversions", "Rejected", "Score"):
                table.add_column(column)
            for rank, e in enumerate(await api.leaderboard(), start=1):
                table.add_row(
                    str(rank), e.email, str(e.total_campaigns), str(e.total_clicks),
                    str(e.total_conversions), str(e.rejected_count), str(e.score),
                )
            self.console.print(table)

        elif action == "analytics":
            if not self._enter(View.ADMIN_ANALYTICS):
                return
            data = await api.analytics()
            stats = data.stats
            table = Table(title="Platform Analytics")
            table.add_column("Metric")
            table.add_column("Value", justify="right")
            for label, value in [
                ("Users", stats.total_users),
                ("Campaigns", stats.total_campaigns),
                ("Approved", stats.approved_campaigns),
                ("Pending", stats.pending_campaigns),
                ("Rejected", stats.rejected_campaigns),
                ("Events", stats.total_events),
                ("Clicks", stats.total_clicks),
                ("Conversions", stats.total_conversions),
                ("Avg. conversion rate", f"{stats.average_conversion_rate:.1f}%"),
            ]:
                table.add_row(label, str(value))
            self.console.print(table)
            for item in data.distribution:
                self.console.print(f"  {item.status}: {item.count}")
            self._timeline(data.timeline)

    # ------------------------------------------------------------------
    # Public simulation views
    # ------------------------------------------------------------------

    async def simulate(self, args):
        self._enter(View.SIMULATE)
        landing = await self.ctx.simulation.landing(args.token)
        self.console.print(f"[bold]{landing.title}[/bold]")
        if landing.landing_url:
            self.console.print(f"Landing page: {landing.landing_url}")

        if args.submit:
            result = await self.ctx.simulation.submit(args.token)
            self.notifier.info(result.message or "Form submitted (simulated)")
            await self.awareness(args)

    async def awareness(self, args):
        self._enter(View.AWARENESS)
        page = await self.ctx.simulation.awareness(args.token)
        self.console.print(f"[bold yellow]{page.content.title or page.message}[/bold yellow]")
        if page.content.description:
            self.console.print(page.content.description)
        if page.content.tips:
            self.console.print(f"[green]Tip:[/green] {page.content.tips}")

    # ------------------------------------------------------------------
    # Rendering helpers
    # ------------------------------------------------------------------

    def _campaign_table(self, campaigns: List, title: str, show_owner: bool = False):
        if not campaigns:
            self.notifier.info("No campaigns yet")
            return

        table = Table(title=title)
        table.add_column("ID")
        if show_owner:
            table.add_column("Owner")
        for column in ("Title", "Status", "Expires", "Created", "Admin comment"):
            table.add_column(column)

        styles = {"approved": "green", "pending": "yellow", "rejected": "red"}
        for c in campaigns:
            status = c.status.value
            row = [str(c.id)]
            if show_owner:
                row.append(getattr(c, "user_email", "") or "")
            row.extend([
                c.title,
                f"[{styles.get(status, 'white')}]{status}[/]",
                _fmt_date(c.expiry_date),
                _fmt_date(c.created_at),
                c.admin_comment or "",
            ])
            table.add_row(*row)
        self.console.print(table)

    def _timeline(self, timeline: List):
        if not timeline:
            return
        table = Table(title="Last 30 Days")
        table.add_column("Date")
        table.add_column("Events", justify="right")
        for entry in timeline:
            table.add_row(entry.date, str(entry.count))
        self.console.print(table)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="seap", description="SEAP phishing-awareness client")
    parser.add_argument("--config", type=Path, default=None, help="YAML config file")
    parser.add_argument("--api-url", default=None, help="Backend URL (e.g. http://localhost:8080)")
    parser.add_argument("--session-file", type=Path, default=None, help="Where the session is stored")
    parser.add_argument("--log-level", default=None, help="loguru level (DEBUG, INFO, ...)")

    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("login", help="Log in")
    p.add_argument("--email")
    p.add_argument("--password", help="Prompted for when omitted")
    p.add_argument("--no-prompt", action="store_true", help="Don't prompt for an OTP code")

    p = sub.add_parser("register", help="Create an account")
    p.add_argument("--email")
    p.add_argument("--password", help="Prompted for when omitted")
    p.add_argument("--role", choices=[r.value for r in Role], default=Role.USER.value)

    p = sub.add_parser("verify", help="Verify a one-time passcode")
    p.add_argument("--email", required=True)
    p.add_argument("--code", required=True)

    p = sub.add_parser("resend-otp", help="Request a new one-time passcode")
    p.add_argument("--email", required=True)

    sub.add_parser("logout", help="Forget the stored session")
    sub.add_parser("whoami", help="Show the current session")
    sub.add_parser("health", help="Check the backend is reachable")
    sub.add_parser("dashboard", help="Campaign summary and quick actions")

    p = sub.add_parser("profile", help="Show or update your profile")
    profile_sub = p.add_subparsers(dest="action", required=True)
    profile_sub.add_parser("show")
    pu = profile_sub.add_parser("update")
    pu.add_argument("--email")
    pu.add_argument("--change-password", action="store_true", help="Prompt for a new password")

    p = sub.add_parser("campaigns", help="Manage your campaigns")
    campaign_sub = p.add_subparsers(dest="action", required=True)
    campaign_sub.add_parser("list")
    cs = campaign_sub.add_parser("show")
    cs.add_argument("id")
    cc = campaign_sub.add_parser("create")
    cc.add_argument("--title", required=True)
    cc.add_argument("--email-text", required=True)
    cc.add_argument("--description", default="")
    cc.add_argument("--landing-url", default="")
    cc.add_argument("--expiry", type=_parse_datetime, default=None, help="ISO date/time")
    cu = campaign_sub.add_parser("update")
    cu.add_argument("id")
    cu.add_argument("--title")
    cu.add_argument("--email-text")
    cu.add_argument("--description")
    cu.add_argument("--landing-url")
    cu.add_argument("--expiry", type=_parse_datetime, default=None, help="ISO date/time")
    cu.add_argument("--clear-expiry", action="store_true")
    cd = campaign_sub.add_parser("delete")
    cd.add_argument("id")

    sub.add_parser("analytics", help="Your campaign analytics")

    p = sub.add_parser("admin", help="Administrator views")
    admin_sub = p.add_subparsers(dest="action", required=True)
    ac = admin_sub.add_parser("campaigns")
    ac.add_argument("--status", choices=["pending", "approved", "rejected"])
    aa = admin_sub.add_parser("approve")
    aa.add_argument("id")
    aa.add_argument("--comment", default="")
    ar = admin_sub.add_parser("reject")
    ar.add_argument("id")
    ar.add_argument("--comment", required=True)
    admin_sub.add_parser("users")
    ad = admin_sub.add_parser("delete-user")
    ad.add_argument("id")
    admin_sub.add_parser("audit-logs")
    admin_sub.add_parser("leaderboard")
    admin_sub.add_parser("analytics")

    p = sub.add_parser("simulate", help="Open a simulation link as a recipient would")
    p.add_argument("token")
    p.add_argument("--submit", action="store_true", help="Also submit the simulated form")

    p = sub.add_parser("awareness", help="Show the awareness page for a token")
    p.add_argument("token")

    return parser


async def _run(args: argparse.Namespace, ctx: SEAPContext, notifier: Notifier, console: Console) -> int:
    async with ctx:
        return await CommandRunner(ctx, notifier, console).run(args)


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point."""
    args = build_parser().parse_args(argv)
    console = Console()
    notifier = Notifier()

    try:
        config = load_config(
            args.config,
            overrides={
                "api_url": args.api_url,
                "session_file": args.session_file,
                "log_level": args.log_level,
            },
        )
    except ConfigError as e:
        notifier.error(e.message)
        return EXIT_ERROR

    setup_logging(config.log_level)
    logger.debug(f"Using backend {config.api_url}")

    try:
        return asyncio.run(_run(args, SEAPContext(config), notifier, console))
    except KeyboardInterrupt:
        console.print("\nInterrupted")
        return EXIT_ERROR


if __name__ == "__main__":
    sys.exit(main())
