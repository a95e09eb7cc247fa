#!/usr/bin/env python3

import os
import sys
import functools
import click
from pathlib import Path
from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from rich.markdown import Markdown
from rich.progress import Progress, SpinnerColumn, TextColumn
from loguru import logger

from clawdeploy.errors import DeployError
from clawdeploy.config.env_file import (
    load_env,
    sanitize_prefix,
    select_agent_model,
    DEFAULT_AGENT_NAME,
    DEFAULT_AGENT_DISPLAY_NAME,
    DEFAULT_MODEL_ENDPOINT,
)
from clawdeploy.config.layout import RepoLayout
from clawdeploy.templates.renderer import render_tree, cleanup_generated, PLATFORM_TEMPLATE_VARIABLES
from clawdeploy.templates.overlays import OverlayWriter, MOLTBOOK_NAMESPACE
from clawdeploy.openshift_client.client import ClusterClient
from clawdeploy.deploy_manager import (
    PlatformSetup,
    SetupOptions,
    AgentSetup,
    JobUpdater,
    Teardown,
    AgentRemoval,
    AgentUpdater,
    OptimizerRbacSetup,
    SubmoltCreator,
    namespace_for_prefix,
)

console = Console()

def setup_logging(verbose: bool = False):
    """Setup logging configuration"""
    log_level = "DEBUG" if verbose else "INFO"
    logger.remove()
    logger.add(sys.stderr, level=log_level, format="<green>{time}</green> | <level>{level}</level> | {message}")
    logger.add("logs/clawdeploy.log", rotation="1 MB", level="DEBUG")

def handle_deploy_errors(f):
    """Print DeployError in red and exit 1 instead of a traceback"""
    @functools.wraps(f)
    def wrapper(*args, **kwargs):
        try:
            return f(*args, **kwargs)
        except DeployError as e:
            console.print(f"[red]✗ {str(e)}[/red]")
            sys.exit(1)
    return wrapper

@click.group()
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose logging')
@click.option('--repo-root', '-r', type=click.Path(file_okay=False), default='.', help='Directory holding manifests/, observability/ and .env')
@click.option('--kubeconfig', '-k', type=click.Path(), help='Path to kubeconfig file')
@click.pass_context
def cli(ctx, verbose, repo_root, kubeconfig):
    """clawdeploy - OpenClaw + Moltbook deployment on OpenShift or Kubernetes"""
    ctx.ensure_object(dict)
    ctx.obj['verbose'] = verbose
    ctx.obj['layout'] = RepoLayout(Path(repo_root))
    ctx.obj['kubeconfig'] = kubeconfig

    os.makedirs('logs', exist_ok=True)

    setup_logging(verbose)

def _connect(ctx, k8s: bool) -> ClusterClient:
    client = ClusterClient(ctx.obj.get('kubeconfig'), k8s_mode=k8s)
    if not client.connect():
        login = "kubectl config use-context" if k8s else "oc login"
        raise DeployError(f"Failed to connect to cluster. Check your kubeconfig or run '{login}' first.")
    console.print(f"[green]✓ Connected to {client.cluster_info.api_url} as {client.cluster_info.username}[/green]")
    return client

def _banner(title: str):
    console.print(Panel(f"[bold]{title}[/bold]", expand=False))

@cli.command()
@click.option('--k8s', is_flag=True, help='Target vanilla Kubernetes instead of OpenShift')
@click.option('--with-a2a', is_flag=True, help='Deploy the A2A add-on (SPIFFE/Envoy/Keycloak)')
@click.option('--yes', '-y', is_flag=True, help='Do not prompt; use defaults and generated values')
@click.option('--skip-agents', is_flag=True, help='Deploy the platform only')
@click.option('--prefix', help='Namespace prefix (default: your cluster user name)')
@click.option('--cluster-domain', help='Apps domain, auto-detected on OpenShift')
@click.option('--anthropic-api-key', envvar='ANTHROPIC_API_KEY', help='Anthropic API key for the default agent model')
@click.option('--model-endpoint', help=f'In-cluster model endpoint (default: {DEFAULT_MODEL_ENDPOINT})')
@click.option('--vertex-project', envvar='GOOGLE_CLOUD_PROJECT', help='Use Google Vertex (Gemini) with this GCP project')
@click.option('--vertex-location', envvar='GOOGLE_CLOUD_LOCATION', help='Google Vertex region')
@click.option('--keycloak-url', help='Keycloak URL for A2A')
@click.option('--keycloak-realm', help='Keycloak realm for A2A')
@click.pass_context
@handle_deploy_errors
def setup(ctx, k8s, with_a2a, yes, skip_agents, prefix, cluster_domain, anthropic_api_key,
          model_endpoint, vertex_project, vertex_location, keycloak_url, keycloak_realm):
    """Deploy Moltbook and the OpenClaw gateway (then the agents)"""
    _banner("OpenClaw + Moltbook Setup")
    layout = ctx.obj['layout']
    client = _connect(ctx, k8s)
    existing = load_env(layout.env_file)

    if not cluster_domain:
        cluster_domain = client.detect_cluster_domain()
        if cluster_domain:
            console.print(f"[green]✓ Cluster domain: {cluster_domain}[/green]")
        elif existing.cluster_domain:
            cluster_domain = existing.cluster_domain
        elif not yes:
            console.print("[yellow]⚠ Could not auto-detect cluster domain[/yellow]")
            cluster_domain = click.prompt("Enter cluster domain (e.g., apps.mycluster.com)")
    if not cluster_domain:
        raise DeployError("Cluster domain is required (use --cluster-domain)")

    if not prefix:
        prefix = existing.prefix or sanitize_prefix(client.cluster_info.username)
        if not yes:
            prefix = click.prompt("Namespace prefix", default=prefix)
    prefix = sanitize_prefix(prefix)
    namespace = namespace_for_prefix(prefix)

    console.print(f"[yellow]This will deploy to namespaces: {namespace}, {MOLTBOOK_NAMESPACE}[/yellow]")
    if not yes and not click.confirm("Continue?"):
        console.print("Deployment cancelled")
        return

    options = SetupOptions(
        prefix=prefix,
        cluster_domain=cluster_domain,
        anthropic_api_key=anthropic_api_key or "",
        model_endpoint=model_endpoint or "",
        vertex_enabled=bool(vertex_project),
        google_cloud_project=vertex_project or "",
        google_cloud_location=vertex_location or "",
        with_a2a=with_a2a,
        keycloak_url=keycloak_url or "",
        keycloak_realm=keycloak_realm or "",
    )
    if not yes and not existing.get("POSTGRES_PASSWORD"):
        console.print("PostgreSQL credentials (or press Enter for defaults):")
        options.postgres_db = click.prompt("  Database name", default="moltbook")
        options.postgres_user = click.prompt("  Username", default="moltbook")
        options.postgres_password = click.prompt("  Password (leave empty to generate)", default="",
                                                 hide_input=True, show_default=False)

    agent_name = None
    if not skip_agents and not yes and not existing.custom_agent_name:
        agent_name = _prompt_agent_name()

    report = PlatformSetup(client, layout, k8s_mode=k8s).run(options, skip_agents=skip_agents, agent_name=agent_name)

    env = load_env(layout.env_file)
    _display_report(report)
    content = f"""
**OpenClaw Gateway**: {report.details.get('openclaw_url') or 'n/a'}
**Moltbook Frontend**: {report.details.get('moltbook_frontend_url') or 'n/a'}
**Moltbook API**: {report.details.get('moltbook_api_url') or 'n/a'}

**Gateway Token**: {env.get('OPENCLAW_GATEWAY_TOKEN')}
**Moltbook Admin API Key**: {env.get('ADMIN_API_KEY')}
**PostgreSQL**: db={env.get('POSTGRES_DB')} user={env.get('POSTGRES_USER')} password={env.get('POSTGRES_PASSWORD')}
    """
    console.print(Panel(Markdown(content), title="Deployment Complete", expand=False))
    if skip_agents:
        console.print(f"[dim]Deploy agents later with: clawdeploy setup-agents{' --k8s' if k8s else ''}[/dim]")

def _prompt_agent_name() -> str:
    console.print(f"Your default agent is '{DEFAULT_AGENT_DISPLAY_NAME}'. Would you like to customize its name?")
    return click.prompt(f"  Enter a name (or press Enter to keep '{DEFAULT_AGENT_DISPLAY_NAME}')",
                        default="", show_default=False)

@cli.command('setup-agents')
@click.option('--k8s', is_flag=True, help='Target vanilla Kubernetes instead of OpenShift')
@click.option('--agent-name', help='Display name for the default agent (skips the prompt)')
@click.pass_context
@handle_deploy_errors
def setup_agents(ctx, k8s, agent_name):
    """Deploy, register and install the bundled agents"""
    _banner("Agent Setup")
    layout = ctx.obj['layout']
    env = load_env(layout.env_file, required=AgentSetup.REQUIRED_KEYS)
    if env.custom_agent_name:
        console.print(f"Using saved agent name: {env.display_agent_name}")
    elif agent_name is None:
        agent_name = _prompt_agent_name()

    client = _connect(ctx, k8s)
    report = AgentSetup(client, layout, k8s_mode=k8s).run(agent_name)
    _display_report(report)
    console.print(f"\n[bold green]✓ Agents deployed: {report.details.get('agents', '')}[/bold green]")

@cli.command('update-jobs')
@click.option('--k8s', is_flag=True, help='Target vanilla Kubernetes instead of OpenShift')
@click.option('--skip-restart', is_flag=True, help="Write files but don't restart the gateway")
@click.pass_context
@handle_deploy_errors
def update_jobs(ctx, k8s, skip_restart):
    """Refresh cron jobs and the resource-report script in the gateway"""
    _banner("Update Cron Jobs")
    layout = ctx.obj['layout']
    load_env(layout.env_file, required=JobUpdater.REQUIRED_KEYS)
    client = _connect(ctx, k8s)
    report = JobUpdater(client, layout).run(skip_restart=skip_restart)
    _display_report(report)
    console.print(f"[green]✓ Jobs updated: {report.details.get('jobs', '')}[/green]")

@cli.command('update-agent')
@click.argument('agent', type=click.Choice(['shadowman', 'philbot', 'resource-optimizer']))
@click.option('--k8s', is_flag=True, help='Target vanilla Kubernetes instead of OpenShift')
@click.option('--skip-restart', is_flag=True, help="Write files but don't restart the gateway")
@click.pass_context
@handle_deploy_errors
def update_agent(ctx, agent, k8s, skip_restart):
    """Re-apply one agent's ConfigMap and refresh its workspace and cron jobs"""
    _banner(f"Update Agent: {agent}")
    layout = ctx.obj['layout']
    load_env(layout.env_file, required=AgentUpdater.REQUIRED_KEYS)
    client = _connect(ctx, k8s)
    report = AgentUpdater(client, layout).run(agent, skip_restart=skip_restart)
    _display_report(report)
    console.print(f"[green]✓ Updated {report.details.get('agent', agent)} (jobs: {report.details.get('jobs', 'none')})[/green]")

@cli.command()
@click.option('--k8s', is_flag=True, help='Target vanilla Kubernetes instead of OpenShift')
@click.option('--delete-env', is_flag=True, help='Also delete the .env file')
@click.option('--yes', '-y', is_flag=True, help='Do not ask for confirmation')
@click.pass_context
@handle_deploy_errors
def teardown(ctx, k8s, delete_env, yes):
    """Delete an OpenClaw deployment"""
    _banner("OpenClaw Teardown")
    layout = ctx.obj['layout']
    env = load_env(layout.env_file)

    namespace = env.namespace
    if not namespace:
        console.print("[yellow]⚠ No .env file and OPENCLAW_NAMESPACE not set.[/yellow]")
        namespace = click.prompt("  Enter OpenClaw namespace to teardown (e.g., alice-openclaw)",
                                 default="", show_default=False).strip()
        if not namespace:
            raise DeployError("Namespace is required.")

    console.print(f"Namespace to teardown:\n  - {namespace}")
    if not yes and not click.confirm("Continue?"):
        console.print("Teardown cancelled")
        return

    client = _connect(ctx, k8s)
    report = Teardown(client, layout, k8s_mode=k8s).run(env, namespace, delete_env=delete_env)
    _display_report(report)
    console.print(f"\n[bold green]✓ Teardown complete[/bold green]")
    console.print(f"[dim]To redeploy, run: clawdeploy setup{' --k8s' if k8s else ''}[/dim]")

@cli.command('remove-agents')
@click.option('--k8s', is_flag=True, help='Target vanilla Kubernetes instead of OpenShift')
@click.option('--yes', '-y', is_flag=True, help='Do not ask for confirmation')
@click.pass_context
@handle_deploy_errors
def remove_agents(ctx, k8s, yes):
    """Remove PhilBot and the Resource Optimizer, keeping the default agent"""
    layout = ctx.obj['layout']
    if not yes and not click.confirm("Remove the add-on agents' cron jobs and workspaces?"):
        return
    client = _connect(ctx, k8s)
    report = AgentRemoval(client, layout).run()
    _display_report(report)
    console.print(f"[green]✓ Removed: {report.details.get('removed', '')}[/green]")
    console.print("[dim]Kept: default agent, agent secrets, Moltbook registrations[/dim]")

@cli.command('setup-optimizer-rbac')
@click.option('--k8s', is_flag=True, help='Target vanilla Kubernetes instead of OpenShift')
@click.pass_context
@handle_deploy_errors
def setup_optimizer_rbac(ctx, k8s):
    """Grant and verify the resource-optimizer's read-only cluster access"""
    layout = ctx.obj['layout']
    client = _connect(ctx, k8s)
    report = OptimizerRbacSetup(client, layout).run()
    _display_report(report)

    table = Table(title="Resource Optimizer Access")
    table.add_column("Check", style="cyan")
    table.add_column("Result", style="white")
    table.add_row("List pods in resource-demo", report.details.get("read_pods", ""))
    table.add_row("Pod metrics", report.details.get("metrics", ""))
    table.add_row("Writes blocked", report.details.get("write_blocked", ""))
    console.print(table)

@cli.command('create-submolts')
@click.option('--k8s', is_flag=True, help='Target vanilla Kubernetes instead of OpenShift')
@click.option('--api-url', help='Moltbook API URL (default: the moltbook-api route)')
@click.option('--key-secret', help="Secret holding the API key (default: the default agent's)")
@click.pass_context
@handle_deploy_errors
def create_submolts(ctx, k8s, api_url, key_secret):
    """Create the submolts the agents post to"""
    layout = ctx.obj['layout']
    client = _connect(ctx, k8s)
    report = SubmoltCreator(client, layout).run(api_url=api_url, key_secret=key_secret)

    status_styles = {'created': 'green', 'exists': 'yellow', 'failed': 'red'}
    table = Table(title="Submolts")
    table.add_column("Submolt", style="cyan")
    table.add_column("Result", style="white")
    for name, status in report.details.items():
        style = status_styles.get(status, 'white')
        table.add_row(name, f"[{style}]{status}[/{style}]")
    console.print(table)

@cli.command()
@click.option('--k8s', is_flag=True, help='Skip OpenShift-only overlay files')
@click.option('--cleanup', is_flag=True, help='Remove generated files instead of rendering')
@click.pass_context
@handle_deploy_errors
def render(ctx, k8s, cleanup):
    """Render templates and private overlays from .env without touching the cluster"""
    layout = ctx.obj['layout']
    if cleanup:
        removed = cleanup_generated(layout.template_roots)
        console.print(f"[green]✓ Removed {removed} generated files[/green]")
        return

    env = load_env(layout.env_file, required=("OPENCLAW_PREFIX", "OPENCLAW_NAMESPACE", "CLUSTER_DOMAIN"))
    if not env.get("MODEL_ENDPOINT"):
        env.set("MODEL_ENDPOINT", DEFAULT_MODEL_ENDPOINT)
    if not env.custom_agent_name:
        env.set("SHADOWMAN_CUSTOM_NAME", DEFAULT_AGENT_NAME)
        env.set("SHADOWMAN_DISPLAY_NAME", DEFAULT_AGENT_DISPLAY_NAME)
    env.set("DEFAULT_AGENT_MODEL", select_agent_model(env))

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
        transient=True
    ) as progress:
        task = progress.add_task("Rendering templates...", total=None)
        generated = render_tree(layout.template_roots, env.as_template_variables(), PLATFORM_TEMPLATE_VARIABLES)
        generated += OverlayWriter(layout, env, k8s_mode=k8s).write_all()
        progress.update(task, description="Rendering complete")

    for path in generated:
        console.print(f"[green]✓[/green] {_relative(path, layout.root)}")
    console.print(f"\n[bold green]{len(generated)} files written[/bold green]")

@cli.command()
@click.argument('path', type=click.Path(exists=True))
@click.option('--namespace', '-n', help='Target namespace')
@click.option('--dry-run', is_flag=True, help='Server-side dry run')
@click.option('--k8s', is_flag=True, help='Target vanilla Kubernetes instead of OpenShift')
@click.pass_context
@handle_deploy_errors
def apply(ctx, path, namespace, dry_run, k8s):
    """Apply a manifest file, a directory of manifests or a kustomization"""
    console.print(f"[bold blue]Applying manifests from: {path}[/bold blue]")
    client = _connect(ctx, k8s)

    target = Path(path)
    if target.is_dir() and (target / "kustomization.yaml").is_file():
        results = client.apply_kustomization(target, namespace_override=namespace, dry_run=dry_run)
    elif target.is_dir():
        results = []
        for manifest_file in sorted(target.glob("*.yaml")) + sorted(target.glob("*.yml")):
            results.extend(client.apply_file(manifest_file, namespace, dry_run))
    else:
        results = client.apply_file(target, namespace, dry_run)

    _display_apply_results(results, dry_run)
    if any(not r.success for r in results):
        sys.exit(1)

@cli.command()
@click.option('--k8s', is_flag=True, help='Target vanilla Kubernetes instead of OpenShift')
@click.pass_context
@handle_deploy_errors
def status(ctx, k8s):
    """Show cluster connection and deployment endpoints"""
    layout = ctx.obj['layout']
    client = _connect(ctx, k8s)
    env = load_env(layout.env_file)

    table = Table(title="Cluster Information")
    table.add_column("Property", style="cyan")
    table.add_column("Value", style="white")

    table.add_row("API URL", client.cluster_info.api_url)
    table.add_row("Version", client.cluster_info.version)
    table.add_row("Username", client.cluster_info.username)
    table.add_row("Cluster domain", client.detect_cluster_domain() or env.cluster_domain or "unknown")

    namespace = env.namespace
    if namespace:
        exists = client.namespace_exists(namespace)
        table.add_row("OpenClaw namespace", f"{namespace} ({'present' if exists else 'missing'})")
        host = client.get_route_host("openclaw", namespace)
        table.add_row("OpenClaw gateway", f"https://{host}" if host else "n/a")
    for route in ("moltbook-frontend", "moltbook-api"):
        host = client.get_route_host(route, MOLTBOOK_NAMESPACE)
        table.add_row(route, f"https://{host}" if host else "n/a")
    table.add_row("A2A", "enabled" if env.a2a_enabled else "disabled")

    console.print(table)

def _relative(path: Path, root: Path) -> str:
    try:
        return str(Path(path).resolve().relative_to(root))
    except ValueError:
        return str(path)

def _display_report(report):
    """Display warnings and failed applies of a workflow"""
    if report.failed:
        _display_apply_results(report.failed)
    if report.warnings:
        table = Table(title=f"{report.name}: warnings")
        table.add_column("Warning", style="yellow")
        for warning in report.warnings:
            table.add_row(warning)
        console.print(table)
    applied = len(report.applied) - len(report.failed)
    console.print(f"[dim]{report.name}: {applied} resources applied, "
                  f"{len(report.generated)} files generated, {len(report.warnings)} warnings[/dim]")

def _display_apply_results(results, dry_run=False):
    """Display apply results"""
    action = "Dry-run" if dry_run else "Apply"

    table = Table(title=f"{action} Results")
    table.add_column("Resource", style="cyan")
    table.add_column("Namespace", style="white")
    table.add_column("Status", style="green")
    table.add_column("Error", style="red")

    for result in results:
        status = f"✓ {result.action}" if result.success else "✗ Failed"
        error = result.error_message[:50] + "..." if result.error_message and len(result.error_message) > 50 else result.error_message or ""

        table.add_row(
            f"{result.resource_kind}/{result.resource_name}",
            result.namespace or "",
            status,
            error
        )

    console.print(table)

if __name__ == '__main__':
    cli()
