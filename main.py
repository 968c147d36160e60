"""
Main CLI Entry Point
Unified command-line interface for:
- Running the HTTP API
- Checking the Netlify connection
- Netlify site listing and custom-domain management
- Test deploys and deploys from S3
"""

import sys
import argparse
from pathlib import Path

import uvicorn
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from sitedeploy.api.netlify_client import NetlifyClient
from sitedeploy.api.exceptions import AuthenticationError, NetlifyServiceError
from sitedeploy.server import create_app
from sitedeploy.services import (
    DeploymentOrchestrator,
    DomainService,
    S3DeployParams,
    TestDeployParams,
)
from sitedeploy.utils.config import ConfigurationError, load_settings
from sitedeploy.utils.logger import get_logger, mask_secret, set_log_level

logger = get_logger(__name__)
console = Console()


def _settings():
    """Load settings or exit; missing configuration is fatal"""
    try:
        settings = load_settings()
    except ConfigurationError as e:
        logger.error(f"❌ {str(e)}")
        sys.exit(1)

    set_log_level(settings.log_level)
    return settings


def _print_site(site):
    print(f"\n{'='*60}")
    print(f" SITE: {site.name}")
    print(f"{'='*60}")
    print(f"  ID:             {site.id}")
    print(f"  URL:            {site.public_url or 'N/A'}")
    print(f"  Primary domain: {site.primary_domain or '(none)'}")
    print(f"  Aliases:        {', '.join(site.alias_domains) or '(none)'}")
    print(f"{'='*60}\n")


def cmd_serve(args):
    """Run the HTTP API"""
    settings = _settings()
    host = args.host or settings.api_host
    port = args.port or settings.api_port

    logger.info(f"Starting API on {host}:{port}")
    uvicorn.run(create_app(settings), host=host, port=port, log_level=settings.log_level.lower())


def cmd_check(args):
    """Verify the Netlify token and show the first sites of the account"""
    settings = _settings()
    console.print("\n[bold cyan]Testing Netlify API connection...[/bold cyan]\n")

    info_table = Table(show_header=False, box=None)
    info_table.add_row("[cyan]API URL:[/cyan]", f"[blue]{settings.netlify_api_url}[/blue]")
    info_table.add_row("[cyan]Token:[/cyan]", f"[green]{mask_secret(settings.netlify_token)}[/green]")
    info_table.add_row("[cyan]Base domain:[/cyan]", f"[yellow]{settings.base_domain}[/yellow]")
    info_table.add_row("[cyan]S3 bucket:[/cyan]", f"[yellow]{settings.s3_bucket_name}[/yellow]")
    console.print(info_table)
    console.print()

    client = NetlifyClient(settings)

    try:
        user = client.get_current_user()
        sites = client.list_sites()
    except AuthenticationError as e:
        console.print(Panel(
            f"[bold red]❌ Authentication Failed[/bold red]\n\n"
            f"{str(e)}\n\n"
            f"[yellow]→ Check NETLIFY_TOKEN in your .env file[/yellow]",
            title="Error",
            border_style="red"
        ))
        sys.exit(1)
    except NetlifyServiceError as e:
        console.print(Panel(
            f"[bold red]❌ API Error[/bold red]\n\n{str(e)}",
            title="Error",
            border_style="red"
        ))
        sys.exit(1)

    account = user.get("email") or user.get("full_name") or "N/A"
    console.print(Panel(
        f"[bold green]✅ Connection OK[/bold green]\n\n"
        f"Account: [cyan]{account}[/cyan]\n"
        f"Found [cyan]{len(sites)}[/cyan] site(s).",
        title="Connection Test",
        border_style="green"
    ))

    if sites:
        site_table = Table(show_header=True, header_style="bold magenta")
        site_table.add_column("Site", style="cyan")
        site_table.add_column("Primary domain", style="green")
        site_table.add_column("URL")

        for site in sites[:5]:
            site_table.add_row(site.name, site.primary_domain or "-", site.public_url or "N/A")

        console.print(site_table)


def cmd_sites_list(args):
    """List sites"""
    settings = _settings()
    logger.info("Fetching sites...")

    try:
        sites = NetlifyClient(settings).list_sites()
    except Exception as e:
        logger.error(f"❌ Failed to fetch sites: {str(e)}")
        sys.exit(1)

    print(f"\n{'='*60}")
    print(f" SITES ({len(sites)})")
    print(f"{'='*60}")
    for site in sites:
        primary = site.primary_domain or "-"
        created = site.created_at_display()[:10] or "N/A"
        print(f"  {site.name:<30} {primary:<30} Created: {created}")
    print(f"{'='*60}\n")


def _run_domain_command(args, action):
    settings = _settings()
    service = DomainService(NetlifyClient(settings))

    try:
        site = action(service)
    except Exception as e:
        logger.error(f"❌ Domain operation failed: {str(e)}")
        sys.exit(1)

    _print_site(site)


def cmd_domain_add(args):
    """Add a custom domain (becomes primary when the site has none)"""
    _run_domain_command(args, lambda service: service.add_domain(args.site_id, args.domain, args.txt))


def cmd_domain_remove(args):
    """Remove an alias domain"""
    _run_domain_command(args, lambda service: service.remove_domain(args.site_id, args.domain))


def cmd_domain_set_default(args):
    """Set the primary domain"""
    _run_domain_command(args, lambda service: service.set_default_domain(args.site_id, args.domain, args.txt))


def cmd_domain_switch_default(args):
    """Swap the primary domain with one of the aliases"""
    _run_domain_command(args, lambda service: service.switch_default_domain(args.site_id, args.domain, args.txt))


def cmd_domain_remove_primary(args):
    """Clear the primary domain"""
    _run_domain_command(args, lambda service: service.remove_primary_domain(args.site_id))


def cmd_deploy_site(args):
    """Create/update a site and deploy test content"""
    settings = _settings()
    orchestrator = DeploymentOrchestrator(NetlifyClient(settings), settings)

    file_content = Path(args.html).read_bytes() if args.html else None

    params = TestDeployParams(
        site_name=args.name,
        site_id=args.site_id or "",
        description=args.description or "",
        test_content=args.content or "",
        cleanup_after=args.cleanup,
        custom_domain=args.custom_domain or "",
        file_content=file_content,
        folder_path=args.folder or "",
        wait_for_deploy=args.wait
    )

    try:
        result = orchestrator.test_deploy(params)
    except Exception as e:
        logger.error(f"❌ Test deploy failed: {str(e)}")
        sys.exit(1)

    status = "✅" if result.test_success else "⚠️"
    logger.info(f"{status} {result.message}")
    print(f"\nSite ID:   {result.site_id}")
    print(f"Site URL:  {result.site_url or 'N/A'}")
    print(f"Deploy ID: {result.deploy_id or 'N/A'}\n")

    if not result.test_success:
        sys.exit(2)


def cmd_deploy_s3(args):
    """Deploy files staged in S3"""
    settings = _settings()
    orchestrator = DeploymentOrchestrator(NetlifyClient(settings), settings)

    params = S3DeployParams(
        site_name=args.name,
        s3_path=args.s3_path,
        site_id=args.site_id or "",
        custom_domain=args.custom_domain or ""
    )

    try:
        result = orchestrator.deploy_from_s3(params)
    except Exception as e:
        logger.error(f"❌ S3 deploy failed: {str(e)}")
        sys.exit(1)

    status = "✅" if result.test_success else "⚠️"
    logger.info(f"{status} {result.message}")
    print(f"\nSite ID:   {result.site_id}")
    print(f"Site URL:  {result.site_url or 'N/A'}")
    print(f"Subdomain: {result.subdomain}")
    print(f"Deploy ID: {result.deploy_id}\n")

    if not result.test_success:
        sys.exit(2)


def main():
    """Main CLI entry point"""
    parser = argparse.ArgumentParser(
        description="Netlify Site Deployment & Domain Management CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run the HTTP API (docs at /docs/swagger)
  python main.py serve --port 8080

  # Verify the Netlify token
  python main.py check

  # List sites
  python main.py sites list

  # Add a custom domain (becomes primary when the site has none)
  python main.py domain add a1b2c3d4 www.example.com

  # Promote an alias to primary
  python main.py domain switch-default a1b2c3d4 shop.example.com

  # Deploy inline HTML and wait for it to go live
  python main.py deploy site my-test-site --content "<h1>Hello</h1>" --wait

  # Deploy a local folder
  python main.py deploy site my-test-site --folder ./public

  # Deploy the files stored under an S3 prefix
  python main.py deploy s3 landing --s3-path accounts/acme/landing
        """
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # ==================== SERVE COMMAND ====================
    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--host", help="Bind address (default: API_HOST)")
    serve_parser.add_argument("--port", type=int, help="Port (default: API_PORT)")
    serve_parser.set_defaults(func=cmd_serve)

    # ==================== CHECK COMMAND ====================
    check_parser = subparsers.add_parser("check", help="Verify the Netlify token and API access")
    check_parser.set_defaults(func=cmd_check)

    # ==================== SITES COMMANDS ====================
    sites_parser = subparsers.add_parser("sites", help="Site management")
    sites_subparsers = sites_parser.add_subparsers(dest="sites_command", help="Site commands")

    sites_list_parser = sites_subparsers.add_parser("list", help="List sites")
    sites_list_parser.set_defaults(func=cmd_sites_list)

    # ==================== DOMAIN COMMANDS ====================
    domain_parser = subparsers.add_parser("domain", help="Custom domain management")
    domain_subparsers = domain_parser.add_subparsers(dest="domain_command", help="Domain commands")

    add_parser = domain_subparsers.add_parser("add", help="Add a custom domain")
    add_parser.add_argument("site_id", help="Netlify site ID")
    add_parser.add_argument("domain", help="Domain name")
    add_parser.add_argument("--txt", help="TXT verification value (default: NETLIFY_TXT_RECORD_VALUE)")
    add_parser.set_defaults(func=cmd_domain_add)

    remove_parser = domain_subparsers.add_parser("remove", help="Remove an alias domain")
    remove_parser.add_argument("site_id", help="Netlify site ID")
    remove_parser.add_argument("domain", help="Domain name")
    remove_parser.set_defaults(func=cmd_domain_remove)

    set_default_parser = domain_subparsers.add_parser("set-default", help="Set the primary domain")
    set_default_parser.add_argument("site_id", help="Netlify site ID")
    set_default_parser.add_argument("domain", help="Domain name")
    set_default_parser.add_argument("--txt", help="TXT verification value (default: NETLIFY_TXT_RECORD_VALUE)")
    set_default_parser.set_defaults(func=cmd_domain_set_default)

    switch_parser = domain_subparsers.add_parser("switch-default", help="Promote an alias to primary")
    switch_parser.add_argument("site_id", help="Netlify site ID")
    switch_parser.add_argument("domain", help="Alias to promote")
    switch_parser.add_argument("--txt", help="TXT verification value (default: NETLIFY_TXT_RECORD_VALUE)")
    switch_parser.set_defaults(func=cmd_domain_switch_default)

    remove_primary_parser = domain_subparsers.add_parser("remove-primary", help="Clear the primary domain")
    remove_primary_parser.add_argument("site_id", help="Netlify site ID")
    remove_primary_parser.set_defaults(func=cmd_domain_remove_primary)

    # ==================== DEPLOY COMMANDS ====================
    deploy_parser = subparsers.add_parser("deploy", help="Deploy content to a site")
    deploy_subparsers = deploy_parser.add_subparsers(dest="deploy_command", help="Deploy commands")

    site_parser = deploy_subparsers.add_parser("site", help="Create/update a site and deploy test content")
    site_parser.add_argument("name", help="Site name")
    site_parser.add_argument("--site-id", help="Existing site ID (renamed to NAME if different)")
    site_parser.add_argument("--html", help="HTML file deployed as index.html")
    site_parser.add_argument("--content", help="Inline HTML deployed as index.html")
    site_parser.add_argument("--folder", help="Local folder to deploy")
    site_parser.add_argument("--custom-domain", help="Custom domain to attach")
    site_parser.add_argument("--description", help="Deploy title")
    site_parser.add_argument("--cleanup", action="store_true", help="Replace an existing site with the same name")
    site_parser.add_argument("--wait", action="store_true", help="Wait until the deploy is live")
    site_parser.set_defaults(func=cmd_deploy_site)

    s3_parser = deploy_subparsers.add_parser("s3", help="Deploy files stored in S3")
    s3_parser.add_argument("name", help="Site name (also used for the <name>.<BASE_DOMAIN> subdomain)")
    s3_parser.add_argument("--s3-path", required=True, help="Key prefix inside S3_BUCKET_NAME")
    s3_parser.add_argument("--site-id", help="Existing site ID")
    s3_parser.add_argument("--custom-domain", help="Custom domain to attach")
    s3_parser.set_defaults(func=cmd_deploy_s3)

    # Parse and execute
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(0)

    if hasattr(args, "func"):
        args.func(args)
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
