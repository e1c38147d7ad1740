"""Initialize new MGZON app projects."""

import json
import shutil
import subprocess
import sys
from pathlib import Path

import click

from ..platform.config import DOCS_URL

TEMPLATES = ["nextjs", "react", "vue", "static", "ecommerce"]

DEFAULT_PROJECT_NAME = "mgzon-app"


def _package_json(name: str, template: str, with_auth: bool, typescript: bool) -> str:
    dependencies = {"@mgzon/sdk": "^1.0.0"}
    dev_dependencies: dict[str, str] = {}
    scripts = {"deploy": "mz deploy"}

    if template == "vue":
        dependencies["vue"] = "^3.4.0"
        dev_dependencies["vite"] = "^5.0.0"
        dev_dependencies["@vitejs/plugin-vue"] = "^5.0.0"
        scripts.update(dev="vite", build="vite build", start="vite preview")
    elif template == "react":
        dependencies["react"] = "^18.2.0"
        dependencies["react-dom"] = "^18.2.0"
        dev_dependencies["vite"] = "^5.0.0"
        dev_dependencies["@vitejs/plugin-react"] = "^4.2.0"
        scripts.update(dev="vite", build="vite build", start="vite preview")
    elif template == "static":
        dev_dependencies["serve"] = "^14.2.0"
        scripts.update(dev="serve public", start="serve public")
    else:
        dependencies["react"] = "^18.2.0"
        dependencies["react-dom"] = "^18.2.0"
        dependencies["next"] = "^14.2.0"
        scripts.update(dev="mz serve", build="next build", start="next start")

    if with_auth:
        dependencies["@mgzon/auth"] = "^1.0.0"
    if typescript:
        dev_dependencies["typescript"] = "^5.4.0"
        dev_dependencies["@types/node"] = "^20.0.0"
        if template in ("nextjs", "react", "ecommerce"):
            dev_dependencies["@types/react"] = "^18.2.0"

    package = {
        "name": name,
        "version": "1.0.0",
        "private": True,
        "scripts": scripts,
        "dependencies": dependencies,
    }
    if dev_dependencies:
        package["devDependencies"] = dev_dependencies
    return json.dumps(package, indent=2) + "\n"


def _mgzon_config(name: str, template: str, with_auth: bool, with_database: bool) -> str:
    permissions = ["read_products", "write_products"]
    if template == "ecommerce":
        permissions += ["read_orders", "write_orders", "read_inventory"]
    config = {
        "name": name,
        "version": "1.0.0",
        "description": "MGZON App",
        "template": template,
        "permissions": permissions,
        "features": {"auth": with_auth, "database": with_database},
        "webhooks": ["order.created", "product.updated"]
        if template == "ecommerce"
        else [],
    }
    return json.dumps(config, indent=2) + "\n"


def _page_source(name: str, template: str) -> tuple[str, str]:
    """Return (relative path, contents) of the starter page."""
    if template == "vue":
        return (
            "src/App.vue",
            f"""<template>
  <main>
    <h1>Welcome to {name}</h1>
    <p>Built on MGZON.</p>
  </main>
</template>
""",
        )
    if template == "static":
        return (
            "public/index.html",
            f"""<!doctype html>
<html lang="en">
  <head>
    <meta charset="utf-8" />
    <title>{name}</title>
  </head>
  <body>
    <h1>Welcome to {name}</h1>
  </body>
</html>
""",
        )
    if template == "react":
        return (
            "src/App.jsx",
            f"""export default function App() {{
  return (
    <div>
      <h1>Welcome to {name}</h1>
    </div>
  );
}}
""",
        )
    heading = "Welcome to your MGZON store" if template == "ecommerce" else (
        "Welcome to MGZON App"
    )
    return (
        "src/app/page.tsx",
        f"""export default function Home() {{
  return (
    <div>
      <h1>{heading}</h1>
    </div>
  );
}}
""",
    )


def _env_local(with_database: bool) -> str:
    lines = ["MGZON_API_KEY=your_api_key_here"]
    if with_database:
        lines.append("MGZON_DATABASE_URL=your_database_url_here")
    return "\n".join(lines) + "\n"


GITIGNORE = """node_modules/
.next/
dist/
out/
.env
.env.local
.env*.local
.DS_Store
*.log
"""


def _readme(name: str, template: str) -> str:
    return f"""# {name}

A {template} app for the MGZON platform.

## Development

```bash
npm install
npm run dev
```

## Deploy

```bash
mz login
mz deploy
```

Documentation: {DOCS_URL}
"""


def create_project_files(
    target_dir: Path,
    name: str,
    template: str,
    with_auth: bool = False,
    with_database: bool = False,
    typescript: bool = False,
) -> list[str]:
    """Write the starter files for a new project.

    Returns:
        Relative paths of the files written.
    """
    page_path, page = _page_source(name, template)
    files = {
        "package.json": _package_json(name, template, with_auth, typescript),
        "mgzon.config.json": _mgzon_config(name, template, with_auth, with_database),
        page_path: page,
        ".env.local": _env_local(with_database),
        ".gitignore": GITIGNORE,
        "README.md": _readme(name, template),
    }
    for rel, content in files.items():
        path = target_dir / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
    return list(files)


@click.command()
@click.argument("project_name", default=DEFAULT_PROJECT_NAME)
@click.option(
    "--template",
    "-t",
    default="nextjs",
    type=click.Choice(TEMPLATES),
    help="Project template (default: nextjs)",
)
@click.option("--with-auth", is_flag=True, help="Include MGZON authentication")
@click.option("--with-database", is_flag=True, help="Include database settings")
@click.option("--typescript", is_flag=True, help="Add TypeScript tooling")
@click.option("--no-install", is_flag=True, help="Skip npm install")
def init(
    project_name: str,
    template: str,
    with_auth: bool,
    with_database: bool,
    typescript: bool,
    no_install: bool,
):
    """Create a new MGZON app in ./PROJECT_NAME."""
    target_dir = Path.cwd() / project_name

    if target_dir.exists():
        click.echo(f"Error: Directory '{project_name}' already exists", err=True)
        sys.exit(1)

    try:
        target_dir.mkdir(parents=True)
        written = create_project_files(
            target_dir, project_name, template, with_auth, with_database, typescript
        )
    except OSError as e:
        click.echo(f"Error: Failed to create project: {e}", err=True)
        shutil.rmtree(target_dir, ignore_errors=True)
        sys.exit(1)

    click.echo(click.style(f"✓ Created {template} app: {project_name}", fg="green"))
    click.echo(f"Project location: {target_dir}")
    for rel in written:
        click.echo(click.style(f"  + {rel}", dim=True))

    installed = False
    if not no_install:
        click.echo("\nInstalling dependencies...")
        try:
            subprocess.run(
                ["npm", "install"],
                cwd=target_dir,
                check=True,
                capture_output=True,
                text=True,
            )
            installed = True
            click.echo("Dependencies installed successfully")
        except FileNotFoundError:
            click.echo("Warning: npm not found. Install Node.js to continue.")
        except subprocess.CalledProcessError as e:
            click.echo(f"Warning: Failed to install dependencies: {e.stderr}")

    click.echo("\nNext steps:")
    click.echo(f"  cd {project_name}")
    if not installed:
        click.echo("  npm install")
    click.echo("  # Add your API key to .env.local")
    click.echo("  mz serve")
    click.echo(f"\nDocumentation: {DOCS_URL}")
