"""Generate source files inside an MGZON project."""

import re
import sys
from collections.abc import Callable
from pathlib import Path

import click

DEFAULT_FIELDS = [("name", "String")]


def parse_fields(spec: str | None) -> list[tuple[str, str]]:
    """Parse "title:String,price:Number" into (name, type) pairs.

    A field without a type is a String. Empty input yields a single
    `name: String` field.
    """
    if not spec:
        return list(DEFAULT_FIELDS)
    fields = []
    for part in spec.split(","):
        name, _, type_ = part.partition(":")
        if name.strip():
            fields.append((name.strip(), type_.strip() or "String"))
    return fields or list(DEFAULT_FIELDS)


def pascal_case(name: str) -> str:
    """Join hyphen and underscore separated parts, e.g. product-card -> ProductCard."""
    return "".join(part[:1].upper() + part[1:] for part in re.split(r"[-_]+", name))


def _model(name: str, fields: list[tuple[str, str]]) -> str:
    name = pascal_case(name)
    body = ",\n  ".join(f"{field}: {type_}" for field, type_ in fields)
    return f"""import mongoose from 'mongoose';

const {name}Schema = new mongoose.Schema({{
  {body}
}}, {{
  timestamps: true
}});

export default mongoose.models.{name} || mongoose.model('{name}', {name}Schema);
"""


def _component(name: str) -> str:
    name = pascal_case(name)
    return f"""'use client';

interface {name}Props {{
  className?: string;
}}

export default function {name}({{ className }}: {name}Props) {{
  return (
    <div className={{className}}>
      <h2>{name} Component</h2>
    </div>
  );
}}
"""


def _page(name: str) -> str:
    title = re.sub(r"[-_]+", " ", name).title()
    component = pascal_case(name)
    return f"""export default function {component}Page() {{
  return (
    <main>
      <h1>{title}</h1>
    </main>
  );
}}
"""


def _api(name: str) -> str:
    return f"""import {{ NextRequest, NextResponse }} from 'next/server';

export async function GET(req: NextRequest) {{
  return NextResponse.json({{
    message: '{name} API endpoint',
    timestamp: new Date().toISOString()
  }});
}}

export async function POST(req: NextRequest) {{
  const body = await req.json();
  return NextResponse.json({{
    message: '{name} created',
    data: body
  }});
}}
"""


def _webhook(name: str) -> str:
    return f"""import crypto from 'crypto';
import {{ NextRequest, NextResponse }} from 'next/server';

// Handler for the {name} webhook
export async function POST(req: NextRequest) {{
  const raw = await req.text();
  const secret = process.env.MGZON_WEBHOOK_SECRET;

  if (secret) {{
    const expected = crypto.createHmac('sha256', secret).update(raw).digest('hex');
    if (req.headers.get('x-developer-signature') !== expected) {{
      return NextResponse.json({{ error: 'Invalid signature' }}, {{ status: 401 }});
    }}
  }}

  const payload = JSON.parse(raw);
  console.log('Webhook received:', payload.event);

  return NextResponse.json({{ received: true }});
}}
"""


# type -> (relative path template, renderer)
GENERATORS: dict[str, tuple[str, Callable[[str, list[tuple[str, str]]], str]]] = {
    "model": ("src/models/{name}.ts", lambda n, f: _model(n, f)),
    "component": ("src/components/{name}.tsx", lambda n, f: _component(n)),
    "page": ("src/app/{name}/page.tsx", lambda n, f: _page(n)),
    "api": ("src/app/api/{name}/route.ts", lambda n, f: _api(n)),
    "webhook": ("src/webhooks/{name}.ts", lambda n, f: _webhook(n)),
}


@click.command()
@click.argument("kind", metavar="TYPE")
@click.option("--name", "-n", prompt="Name", help="Name of the generated item")
@click.option("--fields", "-f", help='Model fields, e.g. "title:String,price:Number"')
@click.option(
    "--path",
    "-p",
    "base_dir",
    default=".",
    type=click.Path(file_okay=False, resolve_path=True),
    help="Project directory (default: current directory)",
)
def generate(kind: str, name: str, fields: str | None, base_dir: str):
    """Generate a model, component, page, api route or webhook handler.

    \b
    Example:
        mz generate model --name Product --fields "title:String,price:Number"
        mz generate component --name ProductCard
        mz generate api --name products
    """
    kind = kind.lower()
    if kind not in GENERATORS:
        click.echo(f"Error: Unknown type: {kind}", err=True)
        click.echo(f"Available types: {', '.join(GENERATORS)}", err=True)
        sys.exit(1)

    name = name.strip()
    if not re.fullmatch(r"[A-Za-z][\w-]*", name):
        click.echo(f"Error: '{name}' is not a valid name", err=True)
        sys.exit(1)

    path_template, render = GENERATORS[kind]
    rel = path_template.format(name=name)
    target = Path(base_dir) / rel
    if target.exists():
        click.echo(f"Error: {rel} already exists", err=True)
        sys.exit(1)

    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(render(name, parse_fields(fields)))
    click.echo(click.style(f"✓ Created {kind}: {rel}", fg="green"))
