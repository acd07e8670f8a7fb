"""notion: work with Notion pages, databases and blocks from the terminal."""

from __future__ import annotations

from collections.abc import Callable
import json
import logging
import mimetypes
from pathlib import Path
import sys

import click

from . import __version__
from .client import NotionClient
from .config import Credentials, clear_credentials, load_credentials, resolve_setting, save_credentials
from .errors import LocalIOError, NotionCLIError, UnknownProperty, UsageError
from .filters import compile_filters, compile_sort
from .formatters import (
    SEPARATOR,
    format_comments,
    format_database,
    format_field,
    format_file_uploads,
    format_json,
    format_object_list,
    format_page_properties,
    format_query_results,
    format_search,
    format_subtitle,
    format_title,
    format_user,
    format_users,
)
from .ids import resolve_id, web_url
from .log import configure_logging
from .markdown import Block, block_type_alias, parse_markdown, render_block, render_blocks, text_block
from .pagination import Page, collect_all
from .properties import (
    PropertyType,
    build_properties,
    encode,
    extract_title,
    parse_assignment,
    rich_text,
    schema_from_database,
    schema_from_properties,
    title_property,
)

logger = logging.getLogger(__name__)

OUTPUT_FORMATS = ("json", "table", "text", "md", "markdown")
DEFAULT_FORMAT = "text"
DEFAULT_TIMEOUT = 30.0
MAX_TIMEOUT = 300.0

_USAGE_CODES = {"USAGE", "CONFIG", "UNKNOWN_PROPERTY", "NO_OPERATOR", "INVALID_PROPERTY_FORMAT"}
_AUTH_CODES = {"UNAUTHENTICATED", "unauthorized", "restricted_resource"}


# ---------------------------------------------------------------------------
# Context helpers
# ---------------------------------------------------------------------------

def _output_format(ctx: click.Context) -> str:
    return (ctx.obj or {}).get("format", DEFAULT_FORMAT)


def _is_json(ctx: click.Context) -> bool:
    return _output_format(ctx) == "json"


def _is_markdown(ctx: click.Context) -> bool:
    return _output_format(ctx) in {"md", "markdown"}


def _resolve_token() -> str:
    env_token = resolve_setting(None, "NOTION_TOKEN", None, "")
    if env_token:
        return env_token
    return load_credentials().token


def _get_client(ctx: click.Context) -> NotionClient:
    """Client for this invocation, created on first use and closed on exit."""
    root = ctx.find_root()
    client = root.obj.get("client")
    if client is None:
        token = _resolve_token()
        if not token:
            raise NotionCLIError(
                "not authenticated. Run 'notion auth login' or set NOTION_TOKEN",
                code="UNAUTHENTICATED",
            )
        client = NotionClient(token, timeout=root.obj.get("timeout", DEFAULT_TIMEOUT))
        root.obj["client"] = client
        root.call_on_close(client.close)
    return client


def _exit_code_for_error(err: NotionCLIError) -> int:
    """Map failures to deterministic process exit codes."""
    if err.code in _USAGE_CODES:
        return 2
    if err.code in _AUTH_CODES or err.status_code in {401, 403}:
        return 10
    if err.code == "rate_limited" or err.status_code == 429:
        return 11
    if err.code == "object_not_found" or err.status_code == 404:
        return 12
    if err.code in {"TIMEOUT", "NETWORK"}:
        return 13
    if err.status_code >= 500:
        return 15
    return 1


def _exit_with_error(ctx: click.Context, err: NotionCLIError) -> None:
    exit_code = _exit_code_for_error(err)
    if _is_json(ctx):
        payload = {
            "error": {
                "code": err.code,
                "message": err.message,
                "status": err.status_code,
                "hint": err.hint,
                "exitCode": exit_code,
            }
        }
        click.echo(format_json(payload), err=True)
    else:
        click.echo(f"Error: {err.message}", err=True)
        if err.hint:
            click.echo(f"  → {err.hint}", err=True)
    sys.exit(exit_code)


def _emit(ctx: click.Context, data, human_text: str | None = None) -> None:
    """Print raw JSON in json mode, else the human rendering."""
    if _is_json(ctx) or human_text is None:
        click.echo(format_json(data))
    else:
        click.echo(human_text)


def _collect(fetch_raw: Callable[[str | None], dict], cursor: str | None, fetch_all: bool) -> tuple[list, dict]:
    """Run the pagination loop; return every result plus the last raw page."""
    last: dict = {}

    def fetch_page(page_cursor: str | None) -> Page:
        nonlocal last
        last = fetch_raw(page_cursor)
        return Page.from_dict(last)

    results = collect_all(fetch_page, start_cursor=cursor, stop_early=not fetch_all)
    return results, last


def _emit_list(ctx: click.Context, results: list, last: dict, fetch_all: bool, human_text: str) -> None:
    if _is_json(ctx):
        click.echo(format_json({"results": results} if fetch_all else last))
    else:
        click.echo(human_text)


def _read_text_file(path: str) -> str:
    try:
        return Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        raise LocalIOError(f"read file: {exc}") from exc


def _parse_columns(columns: str) -> dict:
    """``Status:select,Date:date`` -> empty property definitions keyed by name."""
    properties = {}
    for part in columns.split(","):
        name, sep, prop_type = part.strip().partition(":")
        if not sep:
            continue
        properties[name.strip()] = {prop_type.strip(): {}}
    return properties


def _fetch_blocks(
    client: NotionClient,
    parent_id: str,
    *,
    depth: int = 1,
    cursor: str | None = None,
    fetch_all: bool = True,
) -> list[Block]:
    """Fetch child blocks, descending ``depth - 1`` further levels.

    Children are fetched before their parent is added, so every returned
    block already owns its full subtree.
    """
    raw = collect_all(
        lambda page_cursor: Page.from_dict(client.get_block_children(parent_id, start_cursor=page_cursor)),
        start_cursor=cursor,
        stop_early=not fetch_all,
    )
    blocks = []
    for item in raw:
        if not isinstance(item, dict):
            continue
        block = Block.from_dict(item)
        if depth > 1 and block.has_children and block.id:
            block.children = _fetch_blocks(client, block.id, depth=depth - 1)
        blocks.append(block)
    return blocks


def _content_blocks(text: str | None, block_type: str, language: str | None, file_path: str | None) -> list[Block]:
    if file_path:
        return parse_markdown(_read_text_file(file_path))
    if not text:
        raise UsageError("text content or --file is required")
    return [text_block(block_type_alias(block_type), text, language)]


# ---------------------------------------------------------------------------
# auth
# ---------------------------------------------------------------------------

@click.command("login")
@click.option("--with-token", is_flag=True, help="Read the token from standard input")
@click.pass_context
def auth_login(ctx, with_token):
    """Authenticate with an integration token."""
    try:
        if with_token:
            token = click.get_text_stream("stdin").readline().strip()
        else:
            token = click.prompt("Paste your integration token", hide_input=True, default="", show_default=False).strip()
        if not token:
            raise UsageError("no token provided")

        client = NotionClient(token, timeout=ctx.obj.get("timeout", DEFAULT_TIMEOUT))
        ctx.call_on_close(client.close)
        me = client.me()
        bot = me.get("bot") or {}
        creds = Credentials(
            token=token,
            workspace_name=bot.get("workspace_name") or "",
            workspace_id=bot.get("workspace_id") or "",
            bot_id=me.get("id") or "",
        )
        path = save_credentials(creds)
        logger.debug("saved credentials to %s", path)
        _emit(ctx, me, format_title("✓", f"Logged in to {creds.workspace_name}"))
    except NotionCLIError as e:
        _exit_with_error(ctx, e)


@click.command("status")
@click.pass_context
def auth_status(ctx):
    """Show authentication status."""
    try:
        if not _resolve_token():
            click.echo("✗ Not authenticated")
            return
        me = _get_client(ctx).me()
        lines = [
            format_title("✓", "Authenticated"),
            format_field("Workspace", (me.get("bot") or {}).get("workspace_name") or ""),
            format_field("Bot", me.get("name") or ""),
        ]
        _emit(ctx, me, "\n".join(lines))
    except NotionCLIError as e:
        _exit_with_error(ctx, e)


@click.command("logout")
@click.pass_context
def auth_logout(ctx):
    """Forget the stored token."""
    try:
        clear_credentials()
        click.echo("✓ Logged out")
    except NotionCLIError as e:
        _exit_with_error(ctx, e)


# ---------------------------------------------------------------------------
# search
# ---------------------------------------------------------------------------

@click.command("search")
@click.argument("query", nargs=-1)
@click.option("--type", "-t", "object_type", default=None, type=click.Choice(["page", "database"]), help="Only this object type")
@click.option("--limit", "-l", default=10, show_default=True, help="Results per page")
@click.option("--cursor", default=None, help="Pagination cursor from previous results")
@click.option("--all", "fetch_all", is_flag=True, help="Fetch all pages of results")
@click.pass_context
def search(ctx, query, object_type, limit, cursor, fetch_all):
    """Search pages and databases by title."""
    try:
        client = _get_client(ctx)
        text = " ".join(query)
        results, last = _collect(
            lambda c: client.search(text, object_type, limit, c),
            cursor,
            fetch_all,
        )
        _emit_list(ctx, results, last, fetch_all, format_search(results))
    except NotionCLIError as e:
        _exit_with_error(ctx, e)


# ---------------------------------------------------------------------------
# page
# ---------------------------------------------------------------------------

@click.command("view")
@click.argument("page_ref")
@click.pass_context
def page_view(ctx, page_ref):
    """Show a page's content."""
    try:
        client = _get_client(ctx)
        page_id = resolve_id(page_ref)
        page = client.get_page(page_id)
        blocks = _fetch_blocks(client, page_id)

        if _is_json(ctx):
            click.echo(format_json({"page": page, "blocks": {"results": [b.to_tree() for b in blocks]}}))
            return

        title = extract_title(page)
        if _is_markdown(ctx):
            click.echo(f"# {title}\n\n" + render_blocks(blocks, markdown=True), nl=False)
            return

        click.echo(format_title("📄", title))
        click.echo(SEPARATOR)
        click.echo(format_subtitle(f"Last edited: {page.get('last_edited_time', '')}"))
        click.echo()
        click.echo(render_blocks(blocks), nl=False)
    except NotionCLIError as e:
        _exit_with_error(ctx, e)


@click.command("list")
@click.option("--limit", "-l", default=10, show_default=True, help="Results per page")
@click.option("--cursor", default=None, help="Pagination cursor")
@click.option("--all", "fetch_all", is_flag=True, help="Fetch all pages of results")
@click.pass_context
def page_list(ctx, limit, cursor, fetch_all):
    """List pages shared with the integration."""
    try:
        client = _get_client(ctx)
        results, last = _collect(lambda c: client.search("", "page", limit, c), cursor, fetch_all)
        _emit_list(ctx, results, last, fetch_all, format_object_list(results))
    except NotionCLIError as e:
        _exit_with_error(ctx, e)


@click.command("create")
@click.argument("parent_ref")
@click.argument("assignments", nargs=-1)
@click.option("--title", default=None, help="Page title (required under a page)")
@click.option("--body", default=None, help="Body text added as a paragraph")
@click.option("--db", "is_db", is_flag=True, help="Parent is a database; KEY=VALUE args set properties")
@click.pass_context
def page_create(ctx, parent_ref, assignments, title, body, is_db):
    """Create a page under a page or database."""
    try:
        client = _get_client(ctx)
        parent_id = resolve_id(parent_ref)

        if is_db:
            schema = schema_from_database(client.get_database(parent_id))
            properties = build_properties([parse_assignment(a) for a in assignments], schema)
            title_name = title_property(schema)
            if title and title_name:
                properties[title_name] = encode(PropertyType.TITLE, title).to_dict()
            request = {"parent": {"database_id": parent_id}, "properties": properties}
        else:
            if not title:
                raise UsageError("--title is required")
            request = {
                "parent": {"page_id": parent_id},
                "properties": {"title": encode(PropertyType.TITLE, title).to_dict()},
            }

        if body:
            request["children"] = [text_block("paragraph", body).to_dict()]

        result = client.create_page(request)
        lines = [format_title("✓", f"Created: {title or 'New row'}"), format_field("ID", result.get("id", ""))]
        if result.get("url"):
            lines.append(format_field("URL", result["url"]))
        _emit(ctx, result, "\n".join(lines))
    except NotionCLIError as e:
        _exit_with_error(ctx, e)


def _set_archived(ctx: click.Context, page_ref: str, archived: bool, message: str) -> None:
    try:
        result = _get_client(ctx).update_page(resolve_id(page_ref), {"archived": archived})
        _emit(ctx, result, message)
    except NotionCLIError as e:
        _exit_with_error(ctx, e)


@click.command("delete")
@click.argument("page_ref")
@click.pass_context
def page_delete(ctx, page_ref):
    """Archive a page."""
    _set_archived(ctx, page_ref, True, "✓ Page archived")


@click.command("restore")
@click.argument("page_ref")
@click.pass_context
def page_restore(ctx, page_ref):
    """Unarchive a page."""
    _set_archived(ctx, page_ref, False, "✓ Page restored")


@click.command("move")
@click.argument("page_ref")
@click.option("--to", "target", required=True, help="New parent page ID or URL")
@click.pass_context
def page_move(ctx, page_ref, target):
    """Move a page under a new parent."""
    try:
        target_id = resolve_id(target)
        result = _get_client(ctx).move_page(resolve_id(page_ref), target_id)
        _emit(ctx, result, f"✓ Page moved to {target_id}")
    except NotionCLIError as e:
        _exit_with_error(ctx, e)


@click.command("open")
@click.argument("page_ref")
def page_open(page_ref):
    """Open a page in the browser."""
    url = web_url(page_ref)
    click.echo(url)
    click.launch(url)


@click.command("set")
@click.argument("page_ref")
@click.argument("assignments", nargs=-1, required=True)
@click.pass_context
def page_set(ctx, page_ref, assignments):
    """Set page properties from KEY=VALUE pairs."""
    try:
        client = _get_client(ctx)
        page_id = resolve_id(page_ref)
        pairs = [parse_assignment(a) for a in assignments]
        schema = schema_from_properties(client.get_page(page_id).get("properties"))
        properties = build_properties(pairs, schema, where="page")
        result = client.update_page(page_id, {"properties": properties})
        _emit(ctx, result, "✓ Properties updated")
    except NotionCLIError as e:
        _exit_with_error(ctx, e)


@click.command("props")
@click.argument("page_ref")
@click.argument("property_id", required=False)
@click.pass_context
def page_props(ctx, page_ref, property_id):
    """Show page properties, or fetch one property by ID."""
    try:
        client = _get_client(ctx)
        page_id = resolve_id(page_ref)
        if property_id:
            click.echo(format_json(client.get_page_property(page_id, property_id)))
            return
        page = client.get_page(page_id)
        _emit(ctx, page.get("properties") or {}, format_page_properties(page))
    except NotionCLIError as e:
        _exit_with_error(ctx, e)


def _relation_ids(page: dict, prop_name: str) -> list[dict]:
    prop = (page.get("properties") or {}).get(prop_name)
    if not isinstance(prop, dict):
        raise UnknownProperty(prop_name, "page")
    return [item for item in prop.get("relation") or [] if isinstance(item, dict)]


@click.command("link")
@click.argument("page_ref")
@click.option("--prop", "prop_name", required=True, help="Relation property name")
@click.option("--to", "target", required=True, help="Page ID or URL to link")
@click.pass_context
def page_link(ctx, page_ref, prop_name, target):
    """Add a page to a relation property."""
    try:
        client = _get_client(ctx)
        page_id = resolve_id(page_ref)
        relations = _relation_ids(client.get_page(page_id), prop_name)
        relations.append({"id": resolve_id(target)})
        result = client.update_page(page_id, {"properties": {prop_name: {"relation": relations}}})
        _emit(ctx, result, "✓ Relation added")
    except NotionCLIError as e:
        _exit_with_error(ctx, e)


@click.command("unlink")
@click.argument("page_ref")
@click.option("--prop", "prop_name", required=True, help="Relation property name")
@click.option("--from", "source", required=True, help="Page ID or URL to unlink")
@click.pass_context
def page_unlink(ctx, page_ref, prop_name, source):
    """Remove a page from a relation property."""
    try:
        client = _get_client(ctx)
        page_id = resolve_id(page_ref)
        source_id = resolve_id(source)
        relations = [r for r in _relation_ids(client.get_page(page_id), prop_name) if r.get("id") != source_id]
        result = client.update_page(page_id, {"properties": {prop_name: {"relation": relations}}})
        _emit(ctx, result, "✓ Relation removed")
    except NotionCLIError as e:
        _exit_with_error(ctx, e)


# ---------------------------------------------------------------------------
# db
# ---------------------------------------------------------------------------

@click.command("list")
@click.option("--limit", "-l", default=10, show_default=True, help="Results per page")
@click.option("--cursor", default=None, help="Pagination cursor")
@click.option("--all", "fetch_all", is_flag=True, help="Fetch all pages of results")
@click.pass_context
def db_list(ctx, limit, cursor, fetch_all):
    """List databases shared with the integration."""
    try:
        client = _get_client(ctx)
        results, last = _collect(lambda c: client.search("", "database", limit, c), cursor, fetch_all)
        _emit_list(ctx, results, last, fetch_all, format_object_list(results))
    except NotionCLIError as e:
        _exit_with_error(ctx, e)


@click.command("view")
@click.argument("db_ref")
@click.pass_context
def db_view(ctx, db_ref):
    """Show a database schema."""
    try:
        database = _get_client(ctx).get_database(resolve_id(db_ref))
        _emit(ctx, database, format_database(database))
    except NotionCLIError as e:
        _exit_with_error(ctx, e)


@click.command("create")
@click.argument("parent_ref")
@click.option("--title", required=True, help="Database title")
@click.option("--props", default=None, help="Extra columns as name:type,... (e.g. Status:select,Date:date)")
@click.pass_context
def db_create(ctx, parent_ref, title, props):
    """Create a database under a page."""
    try:
        properties = {"Name": {"title": {}}}
        if props:
            properties.update(_parse_columns(props))
        request = {
            "parent": {"page_id": resolve_id(parent_ref)},
            "title": rich_text(title),
            "properties": properties,
        }
        result = _get_client(ctx).create_database(request)
        lines = [format_title("✓", f"Created database: {title}"), format_field("ID", result.get("id", ""))]
        if result.get("url"):
            lines.append(format_field("URL", result["url"]))
        _emit(ctx, result, "\n".join(lines))
    except NotionCLIError as e:
        _exit_with_error(ctx, e)


@click.command("update")
@click.argument("db_ref")
@click.option("--title", default=None, help="New database title")
@click.option("--add-prop", default=None, help="Columns to add as name:type,...")
@click.pass_context
def db_update(ctx, db_ref, title, add_prop):
    """Rename a database or add columns."""
    try:
        request: dict = {}
        if title:
            request["title"] = rich_text(title)
        if add_prop:
            request["properties"] = _parse_columns(add_prop)
        if not request:
            raise UsageError("nothing to update. Specify --title or --add-prop")
        result = _get_client(ctx).update_database(resolve_id(db_ref), request)
        _emit(ctx, result, "✓ Database updated")
    except NotionCLIError as e:
        _exit_with_error(ctx, e)


@click.command("add")
@click.argument("db_ref")
@click.argument("assignments", nargs=-1, required=True)
@click.pass_context
def db_add(ctx, db_ref, assignments):
    """Add a row from KEY=VALUE pairs."""
    try:
        client = _get_client(ctx)
        db_id = resolve_id(db_ref)
        pairs = [parse_assignment(a) for a in assignments]
        schema = schema_from_database(client.get_database(db_id))
        properties = build_properties(pairs, schema)
        result = client.create_page({"parent": {"database_id": db_id}, "properties": properties})
        lines = [format_title("✓", "Row added"), format_field("ID", result.get("id", ""))]
        if result.get("url"):
            lines.append(format_field("URL", result["url"]))
        _emit(ctx, result, "\n".join(lines))
    except NotionCLIError as e:
        _exit_with_error(ctx, e)


def _load_rows(path: str) -> list[dict]:
    try:
        rows = json.loads(_read_text_file(path))
    except json.JSONDecodeError as exc:
        raise UsageError(f'parse JSON: {exc} (expected array of {{"Key": "Value"}} objects)') from exc
    if not isinstance(rows, list) or not all(isinstance(row, dict) for row in rows):
        raise UsageError('expected a JSON array of {"Key": "Value"} objects')
    if not rows:
        raise UsageError("no items in file")
    return rows


def _cell_text(value) -> str:
    return value if isinstance(value, str) else json.dumps(value)


@click.command("add-bulk")
@click.argument("db_ref")
@click.option("--file", "file_path", required=True, help="JSON array of {property: value} rows")
@click.pass_context
def db_add_bulk(ctx, db_ref, file_path):
    """Add many rows from a JSON file, continuing past failed rows."""
    try:
        rows = _load_rows(file_path)
        client = _get_client(ctx)
        db_id = resolve_id(db_ref)
        schema = schema_from_database(client.get_database(db_id))
    except NotionCLIError as e:
        _exit_with_error(ctx, e)
        return

    created = 0
    errors: list[str] = []
    for number, row in enumerate(rows, start=1):
        properties = {}
        for name, value in row.items():
            prop_type = schema.get(name)
            if prop_type is None:
                errors.append(f"row {number}: property {name!r} not found")
                continue
            properties[name] = encode(prop_type, _cell_text(value)).to_dict()
        try:
            client.create_page({"parent": {"database_id": db_id}, "properties": properties})
        except NotionCLIError as e:
            logger.debug("row %d failed: %s", number, e.message)
            errors.append(f"row {number}: {e.message}")
            continue
        created += 1

    if _is_json(ctx):
        click.echo(format_json({"created": created, "total": len(rows), "errors": errors}))
        return
    click.echo(f"✓ {created}/{len(rows)} rows created")
    for error in errors:
        click.echo(f"  ✗ {error}")


@click.command("query")
@click.argument("db_ref")
@click.option("--filter", "-F", "filter_exprs", multiple=True, help="Filter such as 'Status=Done' (repeatable, AND-ed)")
@click.option("--sort", "-s", "sort_exprs", multiple=True, help="Sort such as 'Date:desc' (repeatable)")
@click.option("--limit", "-l", default=0, help="Results per page")
@click.option("--cursor", default=None, help="Pagination cursor")
@click.option("--all", "fetch_all", is_flag=True, help="Fetch all pages of results")
@click.pass_context
def db_query(ctx, db_ref, filter_exprs, sort_exprs, limit, cursor, fetch_all):
    """Query a database with filters and sorts.

    Filter operators: = != > >= < <= ~= (contains) !~= (does not contain).
    """
    try:
        client = _get_client(ctx)
        db_id = resolve_id(db_ref)
        schema = schema_from_database(client.get_database(db_id))

        request: dict = {}
        compiled = compile_filters(filter_exprs, schema)
        if compiled is not None:
            request["filter"] = compiled
        if sort_exprs:
            request["sorts"] = [compile_sort(s).to_dict() for s in sort_exprs]
        if limit > 0:
            request["page_size"] = limit

        def fetch(page_cursor: str | None) -> dict:
            body = dict(request)
            if page_cursor:
                body["start_cursor"] = page_cursor
            return client.query_database(db_id, body)

        results, last = _collect(fetch, cursor, fetch_all)
        if _is_json(ctx):
            click.echo(format_json({"results": results} if fetch_all else last))
            return

        click.echo(format_query_results(results, schema))
        page = Page.from_dict(last)
        if page.has_more and not fetch_all:
            click.echo(format_subtitle(f"\nMore results available. Use --cursor {page.next_cursor}"))
    except NotionCLIError as e:
        _exit_with_error(ctx, e)


@click.command("open")
@click.argument("db_ref")
def db_open(db_ref):
    """Open a database in the browser."""
    url = web_url(db_ref)
    click.echo(url)
    click.launch(url)


# ---------------------------------------------------------------------------
# block
# ---------------------------------------------------------------------------

@click.command("list")
@click.argument("parent_ref")
@click.option("--all", "fetch_all", is_flag=True, help="Fetch all pages of results")
@click.option("--cursor", default=None, help="Pagination cursor")
@click.option("--depth", default=1, show_default=True, help="Levels of nested blocks to fetch")
@click.option("--md", "as_markdown", is_flag=True, help="Render as Markdown")
@click.pass_context
def block_list(ctx, parent_ref, fetch_all, cursor, depth, as_markdown):
    """List child blocks of a page or block."""
    try:
        blocks = _fetch_blocks(
            _get_client(ctx),
            resolve_id(parent_ref),
            depth=max(depth, 1),
            cursor=cursor,
            fetch_all=fetch_all,
        )
        if _is_json(ctx):
            click.echo(format_json({"results": [b.to_tree() for b in blocks]}))
            return
        click.echo(render_blocks(blocks, markdown=as_markdown or _is_markdown(ctx)), nl=False)
    except NotionCLIError as e:
        _exit_with_error(ctx, e)


@click.command("get")
@click.argument("block_ref")
@click.pass_context
def block_get(ctx, block_ref):
    """Show a single block."""
    try:
        raw = _get_client(ctx).get_block(resolve_id(block_ref))
        if _is_json(ctx):
            click.echo(format_json(raw))
            return
        block = Block.from_dict(raw)
        click.echo(format_title("🧱", f"Block: {block.type}"))
        click.echo(format_field("ID", block.id))
        click.echo(format_field("Type", block.type))
        click.echo(format_field("Has Children", "true" if block.has_children else "false"))
        click.echo()
        click.echo(render_block(block), nl=False)
    except NotionCLIError as e:
        _exit_with_error(ctx, e)


@click.command("append")
@click.argument("parent_ref")
@click.argument("text", required=False)
@click.option("--type", "-t", "block_type", default="paragraph", show_default=True,
              help="paragraph, h1, h2, h3, todo, bullet, numbered, quote, code, callout, divider")
@click.option("--lang", default="plain text", show_default=True, help="Language for code blocks")
@click.option("--file", "file_path", default=None, help="Markdown file to convert into blocks")
@click.pass_context
def block_append(ctx, parent_ref, text, block_type, lang, file_path):
    """Append blocks to a page or block."""
    try:
        children = _content_blocks(text, block_type, lang, file_path)
        if not children:
            raise UsageError("no content to append")
        result = _get_client(ctx).append_block_children(resolve_id(parent_ref), [b.to_dict() for b in children])
        _emit(ctx, result, f"✓ {len(children)} block(s) appended")
    except NotionCLIError as e:
        _exit_with_error(ctx, e)


@click.command("insert")
@click.argument("parent_ref")
@click.argument("text", required=False)
@click.option("--after", "after_ref", required=True, help="Block ID to insert after")
@click.option("--type", "-t", "block_type", default="paragraph", show_default=True, help="Block type")
@click.option("--lang", default="plain text", show_default=True, help="Language for code blocks")
@click.option("--file", "file_path", default=None, help="Markdown file to convert into blocks")
@click.pass_context
def block_insert(ctx, parent_ref, text, after_ref, block_type, lang, file_path):
    """Insert blocks after a given child block."""
    try:
        children = _content_blocks(text, block_type, lang, file_path)
        if not children:
            raise UsageError("no content to insert")
        result = _get_client(ctx).append_block_children(
            resolve_id(parent_ref),
            [b.to_dict() for b in children],
            after=resolve_id(after_ref),
        )
        _emit(ctx, result, f"✓ {len(children)} block(s) inserted")
    except NotionCLIError as e:
        _exit_with_error(ctx, e)


@click.command("update")
@click.argument("block_ref")
@click.option("--text", required=True, help="New text content")
@click.option("--type", "-t", "block_type", default=None, help="Block type (read from the block when omitted)")
@click.pass_context
def block_update(ctx, block_ref, text, block_type):
    """Replace a block's text."""
    try:
        client = _get_client(ctx)
        block_id = resolve_id(block_ref)
        if block_type:
            block_type = block_type_alias(block_type)
        else:
            block_type = Block.from_dict(client.get_block(block_id)).type
        result = client.update_block(block_id, {block_type: {"rich_text": rich_text(text)}})
        _emit(ctx, result, "✓ Block updated")
    except NotionCLIError as e:
        _exit_with_error(ctx, e)


@click.command("delete")
@click.argument("block_refs", nargs=-1, required=True)
@click.pass_context
def block_delete(ctx, block_refs):
    """Delete one or more blocks, continuing past failures."""
    try:
        client = _get_client(ctx)
    except NotionCLIError as e:
        _exit_with_error(ctx, e)
        return

    deleted = 0
    errors: list[str] = []
    for ref in block_refs:
        block_id = resolve_id(ref)
        try:
            client.delete_block(block_id)
        except NotionCLIError as e:
            errors.append(f"{block_id}: {e.message}")
            if not _is_json(ctx):
                click.echo(f"✗ Failed to delete {block_id}: {e.message}", err=True)
            continue
        deleted += 1

    if _is_json(ctx):
        click.echo(format_json({"deleted": deleted, "total": len(block_refs), "errors": errors}))
        return
    click.echo(f"✓ {deleted} block(s) deleted")


# ---------------------------------------------------------------------------
# user
# ---------------------------------------------------------------------------

@click.command("me")
@click.pass_context
def user_me(ctx):
    """Show the integration's bot user."""
    try:
        me = _get_client(ctx).me()
        lines = [
            format_title("🤖", me.get("name") or ""),
            format_field("ID", me.get("id", "")),
            format_field("Workspace", (me.get("bot") or {}).get("workspace_name") or ""),
        ]
        _emit(ctx, me, "\n".join(lines))
    except NotionCLIError as e:
        _exit_with_error(ctx, e)


@click.command("list")
@click.option("--cursor", default=None, help="Pagination cursor")
@click.option("--all", "fetch_all", is_flag=True, help="Fetch all pages of results")
@click.pass_context
def user_list(ctx, cursor, fetch_all):
    """List workspace users."""
    try:
        client = _get_client(ctx)
        results, last = _collect(lambda c: client.list_users(start_cursor=c), cursor, fetch_all)
        _emit_list(ctx, results, last, fetch_all, format_users(results))
    except NotionCLIError as e:
        _exit_with_error(ctx, e)


@click.command("get")
@click.argument("user_id")
@click.pass_context
def user_get(ctx, user_id):
    """Show one user."""
    try:
        user = _get_client(ctx).get_user(user_id)
        _emit(ctx, user, format_user(user))
    except NotionCLIError as e:
        _exit_with_error(ctx, e)


# ---------------------------------------------------------------------------
# comment
# ---------------------------------------------------------------------------

@click.command("list")
@click.argument("page_ref")
@click.option("--cursor", default=None, help="Pagination cursor")
@click.option("--all", "fetch_all", is_flag=True, help="Fetch all pages of results")
@click.pass_context
def comment_list(ctx, page_ref, cursor, fetch_all):
    """List comments on a page or block."""
    try:
        client = _get_client(ctx)
        block_id = resolve_id(page_ref)
        results, last = _collect(lambda c: client.list_comments(block_id, start_cursor=c), cursor, fetch_all)
        _emit_list(ctx, results, last, fetch_all, format_comments(results))
    except NotionCLIError as e:
        _exit_with_error(ctx, e)


@click.command("add")
@click.argument("page_ref")
@click.argument("text")
@click.pass_context
def comment_add(ctx, page_ref, text):
    """Comment on a page."""
    try:
        result = _get_client(ctx).add_comment(resolve_id(page_ref), text)
        lines = [format_title("✓", "Comment added"), format_field("ID", result.get("id", ""))]
        _emit(ctx, result, "\n".join(lines))
    except NotionCLIError as e:
        _exit_with_error(ctx, e)


# ---------------------------------------------------------------------------
# file
# ---------------------------------------------------------------------------

@click.command("list")
@click.pass_context
def file_list(ctx):
    """List file uploads."""
    try:
        result = _get_client(ctx).list_file_uploads()
        _emit(ctx, result, format_file_uploads(Page.from_dict(result).results))
    except NotionCLIError as e:
        _exit_with_error(ctx, e)


@click.command("upload")
@click.argument("file_path", type=click.Path(dir_okay=False))
@click.pass_context
def file_upload(ctx, file_path):
    """Upload a file (create the upload, then send its content)."""
    try:
        path = Path(file_path)
        try:
            data = path.read_bytes()
        except OSError as exc:
            raise LocalIOError(f"read file: {exc}") from exc
        content_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"

        client = _get_client(ctx)
        created = client.create_file_upload(path.name, content_type, len(data))
        upload_id = created.get("id")
        if not upload_id:
            raise NotionCLIError("no upload ID returned", code="invalid_response")
        client.send_file_upload(upload_id, path.name, content_type, data)

        lines = [
            format_title("✓", f"Uploaded: {path.name}"),
            format_field("ID", upload_id),
            format_field("Size", f"{len(data)} bytes"),
        ]
        _emit(ctx, created, "\n".join(lines))
    except NotionCLIError as e:
        _exit_with_error(ctx, e)


# ---------------------------------------------------------------------------
# api
# ---------------------------------------------------------------------------

@click.command("api")
@click.argument("method")
@click.argument("path")
@click.option("--body", default=None, help="JSON request body (read from stdin when piped)")
@click.pass_context
def api(ctx, method, path, body):
    """Make a raw authenticated API request."""
    try:
        method = method.upper()
        if not path.startswith("/"):
            path = "/" + path
        if not body and method in {"POST", "PATCH", "PUT"}:
            stdin = click.get_text_stream("stdin")
            if not stdin.isatty():
                body = stdin.read()

        payload = None
        if body and body.strip():
            try:
                payload = json.loads(body)
            except json.JSONDecodeError as exc:
                raise UsageError(f"invalid JSON body: {exc}") from exc

        content = _get_client(ctx).request_raw(method, path, body=payload)
        try:
            click.echo(format_json(json.loads(content)))
        except ValueError:
            click.echo(content.decode("utf-8", errors="replace"))
    except NotionCLIError as e:
        _exit_with_error(ctx, e)


# ---------------------------------------------------------------------------
# Command table
# ---------------------------------------------------------------------------

# (group name, help, commands); a group name of None adds the commands at top level.
COMMAND_GROUPS = (
    ("auth", "Authenticate with Notion.", (auth_login, auth_status, auth_logout)),
    (None, None, (search,)),
    ("page", "Work with pages.", (
        page_view, page_list, page_create, page_delete, page_restore, page_move,
        page_open, page_set, page_props, page_link, page_unlink,
    )),
    ("db", "Work with databases.", (
        db_list, db_view, db_create, db_update, db_add, db_add_bulk, db_query, db_open,
    )),
    ("block", "Work with content blocks.", (
        block_list, block_get, block_append, block_insert, block_update, block_delete,
    )),
    ("user", "User information.", (user_me, user_list, user_get)),
    ("comment", "Work with comments.", (comment_list, comment_add)),
    ("file", "Work with file uploads.", (file_list, file_upload)),
    (None, None, (api,)),
)


@click.group()
@click.option("--format", "-f", "fmt", default=None, type=click.Choice(OUTPUT_FORMATS),
              help="Output format (or set NOTION_FORMAT). Default: text.")
@click.option("--debug", is_flag=True, help="Log HTTP requests and responses to stderr.")
@click.option("--timeout", default=None, type=float, help="HTTP request timeout in seconds (or set NOTION_TIMEOUT).")
@click.version_option(__version__, prog_name="notion")
@click.pass_context
def root(ctx, fmt, debug, timeout):
    """Work with Notion from the command line."""
    ctx.ensure_object(dict)
    ctx.obj["format"] = DEFAULT_FORMAT
    configure_logging(debug)

    try:
        resolved_format = resolve_setting(fmt, "NOTION_FORMAT", None, DEFAULT_FORMAT)
        if resolved_format not in OUTPUT_FORMATS:
            raise NotionCLIError(f"Invalid NOTION_FORMAT: {resolved_format}", code="CONFIG")
        ctx.obj["format"] = resolved_format

        raw_timeout = resolve_setting(timeout, "NOTION_TIMEOUT", None, DEFAULT_TIMEOUT)
        try:
            resolved_timeout = float(raw_timeout)
        except ValueError as exc:
            raise NotionCLIError(f"Invalid NOTION_TIMEOUT: {raw_timeout}", code="CONFIG") from exc
        if resolved_timeout <= 0 or resolved_timeout > MAX_TIMEOUT:
            raise NotionCLIError("timeout must be > 0 and <= 300 seconds", code="CONFIG")
    except NotionCLIError as e:
        _exit_with_error(ctx, e)
        return

    ctx.obj["timeout"] = resolved_timeout
    ctx.obj["debug"] = debug
    logger.debug("format=%s timeout=%s", resolved_format, resolved_timeout)


def build_cli() -> click.Group:
    """Attach every command in ``COMMAND_GROUPS`` to the root group."""
    for name, help_text, commands in COMMAND_GROUPS:
        if name is None:
            for command in commands:
                root.add_command(command)
            continue
        group = click.Group(name, help=help_text)
        for command in commands:
            group.add_command(command)
        root.add_command(group)
    return root


main = build_cli()


if __name__ == "__main__":
    main()
