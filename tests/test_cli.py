import json
import os
from pathlib import Path
import tempfile
import unittest
from unittest.mock import patch

from click.testing import CliRunner

import notion_cli.cli as cli_mod
from notion_cli.errors import RemoteAPIError


def _parse_first_json_blob(text: str):
    decoder = json.JSONDecoder()
    payload, _ = decoder.raw_decode(text.lstrip())
    return payload


def _run(text: str) -> list[dict]:
    return [{"plain_text": text, "text": {"content": text}}]


DATABASE = {
    "object": "database",
    "id": "db1",
    "title": _run("Tasks"),
    "properties": {
        "Name": {"id": "title", "type": "title", "title": {}},
        "Status": {"id": "s", "type": "select", "select": {"options": [{"name": "Todo"}, {"name": "Done"}]}},
        "Count": {"id": "c", "type": "number", "number": {}},
        "Done": {"id": "d", "type": "checkbox", "checkbox": {}},
    },
}

PAGE = {
    "object": "page",
    "id": "page1",
    "url": "https://www.notion.so/page1",
    "last_edited_time": "2024-03-01T10:00:00.000Z",
    "properties": {
        "title": {"id": "title", "type": "title", "title": _run("Project plan")},
        "Related": {"id": "r", "type": "relation", "relation": [{"id": "other"}]},
    },
}

BLOCKS = {
    "page1": [
        {"object": "block", "id": "h", "type": "heading_2", "has_children": False, "heading_2": {"rich_text": _run("Goals")}},
        {"object": "block", "id": "t1", "type": "toggle", "has_children": True, "toggle": {"rich_text": _run("More")}},
    ],
    "t1": [
        {"object": "block", "id": "p", "type": "paragraph", "has_children": False, "paragraph": {"rich_text": _run("hidden")}},
    ],
}


def _row(title: str) -> dict:
    return {
        "object": "page",
        "id": f"row-{title}",
        "properties": {
            "Name": {"type": "title", "title": _run(title)},
            "Status": {"type": "select", "select": {"name": "Done"}},
            "Count": {"type": "number", "number": 4},
            "Done": {"type": "checkbox", "checkbox": True},
        },
    }


class FakeClient:
    calls: list = []

    def __init__(self, token: str, **kwargs):
        self.token = token
        self.timeout = kwargs.get("timeout")

    def _record(self, name, *args):
        FakeClient.calls.append((name, *args))

    def close(self):
        pass

    def me(self):
        return {"object": "user", "id": "bot1", "name": "Helper", "type": "bot", "bot": {"workspace_name": "Acme"}}

    def search(self, query="", object_type=None, page_size=None, start_cursor=None):
        self._record("search", query, object_type, page_size, start_cursor)
        return {
            "object": "list",
            "results": [
                {
                    "object": "page",
                    "id": "page1",
                    "last_edited_time": "2024-03-01T10:00:00.000Z",
                    "properties": PAGE["properties"],
                }
            ],
            "has_more": False,
            "next_cursor": None,
        }

    def get_page(self, page_id):
        return PAGE

    def create_page(self, body):
        self._record("create_page", body)
        title = body.get("properties", {}).get("Name", {}).get("title") or [{}]
        if title[0].get("text", {}).get("content") == "fail":
            raise RemoteAPIError("validation_error: rejected", code="validation_error", status_code=400)
        return {"object": "page", "id": "new-page", "url": "https://www.notion.so/newpage"}

    def update_page(self, page_id, body):
        self._record("update_page", page_id, body)
        return {"object": "page", "id": page_id}

    def get_database(self, database_id):
        return DATABASE

    def query_database(self, database_id, body):
        self._record("query_database", database_id, body)
        return {"object": "list", "results": [_row("First")], "has_more": True, "next_cursor": "cur-2"}

    def get_block(self, block_id):
        return BLOCKS["page1"][0]

    def get_block_children(self, block_id, page_size=100, start_cursor=None):
        return {"object": "list", "results": BLOCKS.get(block_id, []), "has_more": False, "next_cursor": None}

    def append_block_children(self, block_id, children, after=None):
        self._record("append_block_children", block_id, children, after)
        return {"object": "list", "results": children}

    def update_block(self, block_id, body):
        self._record("update_block", block_id, body)
        return {"object": "block", "id": block_id}

    def delete_block(self, block_id):
        if block_id == "bad":
            raise RemoteAPIError("object_not_found: Could not find block", code="object_not_found", status_code=404)
        self._record("delete_block", block_id)
        return {"object": "block", "id": block_id, "archived": True}

    def request_raw(self, method, path, body=None, params=None):
        self._record("request_raw", method, path, body)
        return b'{"ok": true}'

    def move_page(self, page_id, parent_id):
        self._record("move_page", page_id, parent_id)
        return {"object": "page", "id": page_id}

    def get_page_property(self, page_id, property_id):
        self._record("get_page_property", page_id, property_id)
        return {"object": "property_item", "type": "relation", "id": property_id}

    def create_database(self, body):
        self._record("create_database", body)
        return {"object": "database", "id": "new-db", "url": "https://www.notion.so/newdb"}

    def update_database(self, database_id, body):
        self._record("update_database", database_id, body)
        return {"object": "database", "id": database_id}

    def get_user(self, user_id):
        self._record("get_user", user_id)
        return {"object": "user", "id": user_id, "name": "Ann", "type": "person", "person": {"email": "ann@example.com"}}

    def list_users(self, page_size=100, start_cursor=None):
        self._record("list_users", start_cursor)
        if start_cursor is None:
            return {"results": [{"id": "u1", "name": "Ann", "type": "person"}], "has_more": True, "next_cursor": "u-2"}
        return {"results": [{"id": "bot1", "name": "Helper", "type": "bot"}], "has_more": False, "next_cursor": None}

    def list_comments(self, block_id, page_size=100, start_cursor=None):
        self._record("list_comments", block_id, start_cursor)
        return {
            "results": [{"id": "c1", "rich_text": _run("Looks good"), "created_time": "2024-03-02T08:00:00.000Z"}],
            "has_more": False,
            "next_cursor": None,
        }

    def add_comment(self, page_id, text):
        self._record("add_comment", page_id, text)
        return {"object": "comment", "id": "c2"}

    def list_file_uploads(self):
        return {
            "results": [{"id": "up1", "filename": "report.pdf", "status": "uploaded", "created_time": "2024-03-03T00:00:00.000Z"}],
            "has_more": False,
        }

    def create_file_upload(self, file_name, content_type, content_length):
        self._record("create_file_upload", file_name, content_type, content_length)
        return {"object": "file_upload", "id": "up-new", "status": "pending"}

    def send_file_upload(self, upload_id, file_name, content_type, data):
        self._record("send_file_upload", upload_id, file_name, content_type, data)
        return {"object": "file_upload", "id": upload_id, "status": "uploaded"}


class NoUploadIdClient(FakeClient):
    def create_file_upload(self, file_name, content_type, content_length):
        self._record("create_file_upload", file_name, content_type, content_length)
        return {"object": "file_upload", "status": "pending"}


class NotFoundClient(FakeClient):
    def get_page(self, page_id):
        raise RemoteAPIError(
            "object_not_found: Could not find page",
            code="object_not_found",
            status_code=404,
            hint="Check the ID is correct and the page/database is shared with your integration",
        )


class RateLimitedClient(FakeClient):
    def search(self, query="", object_type=None, page_size=None, start_cursor=None):
        raise RemoteAPIError("rate_limited: slow down", code="rate_limited", status_code=429)


class CliTestCase(unittest.TestCase):
    def setUp(self):
        self.runner = CliRunner()
        self.tmp = tempfile.TemporaryDirectory()
        FakeClient.calls = []
        self.env = {
            "NOTION_TOKEN": "secret",
            "NOTION_FORMAT": "",
            "NOTION_TIMEOUT": "",
            "NOTION_CONFIG": str(Path(self.tmp.name) / "config.json"),
        }

    def tearDown(self):
        self.tmp.cleanup()

    def invoke(self, args, client=FakeClient, **kwargs):
        with patch.object(cli_mod, "NotionClient", client):
            return self.runner.invoke(cli_mod.main, args, env=self.env, **kwargs)

    def calls(self, name):
        return [call[1:] for call in FakeClient.calls if call[0] == name]


class GlobalOptionTests(CliTestCase):
    def test_search_json_passthrough(self):
        result = self.invoke(["--format", "json", "search", "project", "plan"])
        self.assertEqual(result.exit_code, 0)
        payload = _parse_first_json_blob(result.output)
        self.assertEqual(payload["object"], "list")
        self.assertEqual(payload["results"][0]["id"], "page1")
        self.assertEqual(self.calls("search"), [("project plan", None, 10, None)])

    def test_search_table(self):
        result = self.invoke(["search", "plan", "--type", "page"])
        self.assertEqual(result.exit_code, 0)
        self.assertIn("TITLE", result.output)
        self.assertIn("Project plan", result.output)
        self.assertIn("2024-03-01", result.output)

    def test_format_from_environment(self):
        self.env["NOTION_FORMAT"] = "json"
        result = self.invoke(["search"])
        self.assertEqual(result.exit_code, 0)
        self.assertEqual(_parse_first_json_blob(result.output)["object"], "list")

    def test_invalid_timeout_is_usage_error(self):
        result = self.invoke(["--timeout", "0", "search"])
        self.assertEqual(result.exit_code, 2)
        self.assertIn("timeout must be > 0", result.output)

    def test_invalid_timeout_from_environment(self):
        self.env["NOTION_TIMEOUT"] = "soon"
        result = self.invoke(["search"])
        self.assertEqual(result.exit_code, 2)
        self.assertIn("Invalid NOTION_TIMEOUT", result.output)

    def test_timeout_reaches_client(self):
        seen = {}

        class TimeoutClient(FakeClient):
            def __init__(self, token, **kwargs):
                super().__init__(token, **kwargs)
                seen["timeout"] = self.timeout

        result = self.invoke(["--timeout", "5", "search"], client=TimeoutClient)
        self.assertEqual(result.exit_code, 0)
        self.assertEqual(seen["timeout"], 5.0)

    def test_version(self):
        result = self.runner.invoke(cli_mod.main, ["--version"])
        self.assertEqual(result.exit_code, 0)
        self.assertIn(cli_mod.__version__, result.output)


class ErrorExitTests(CliTestCase):
    def test_missing_token(self):
        self.env["NOTION_TOKEN"] = ""
        result = self.invoke(["search"])
        self.assertEqual(result.exit_code, 10)
        self.assertIn("not authenticated", result.output)

    def test_not_found_in_json_mode(self):
        result = self.invoke(["-f", "json", "page", "view", "missing"], client=NotFoundClient)
        self.assertEqual(result.exit_code, 12)
        error = _parse_first_json_blob(result.output)["error"]
        self.assertEqual(error["code"], "object_not_found")
        self.assertEqual(error["status"], 404)
        self.assertEqual(error["exitCode"], 12)

    def test_not_found_prints_hint(self):
        result = self.invoke(["page", "view", "missing"], client=NotFoundClient)
        self.assertEqual(result.exit_code, 12)
        self.assertIn("Error: object_not_found: Could not find page", result.output)
        self.assertIn("→ Check the ID", result.output)

    def test_rate_limited(self):
        result = self.invoke(["search", "x"], client=RateLimitedClient)
        self.assertEqual(result.exit_code, 11)

    def test_exit_code_table(self):
        from notion_cli.errors import NotionCLIError, TransportError, UnknownProperty

        self.assertEqual(cli_mod._exit_code_for_error(UnknownProperty("X")), 2)
        self.assertEqual(cli_mod._exit_code_for_error(NotionCLIError("x", code="unauthorized", status_code=401)), 10)
        self.assertEqual(cli_mod._exit_code_for_error(TransportError("x", code="TIMEOUT")), 13)
        self.assertEqual(cli_mod._exit_code_for_error(NotionCLIError("x", code="internal_server_error", status_code=500)), 15)
        self.assertEqual(cli_mod._exit_code_for_error(NotionCLIError("x", code="IO")), 1)


class AuthTests(CliTestCase):
    def test_login_with_token_saves_credentials(self):
        result = self.invoke(["auth", "login", "--with-token"], input="ntn_abc\n")
        self.assertEqual(result.exit_code, 0)
        self.assertIn("Logged in to Acme", result.output)
        saved = json.loads(Path(self.env["NOTION_CONFIG"]).read_text())
        self.assertEqual(saved["token"], "ntn_abc")
        self.assertEqual(saved["bot_id"], "bot1")

    def test_status_without_token(self):
        self.env["NOTION_TOKEN"] = ""
        result = self.invoke(["auth", "status"])
        self.assertEqual(result.exit_code, 0)
        self.assertIn("Not authenticated", result.output)

    def test_logout(self):
        result = self.invoke(["auth", "logout"])
        self.assertEqual(result.exit_code, 0)
        self.assertEqual(json.loads(Path(self.env["NOTION_CONFIG"]).read_text())["token"], "")


class PageTests(CliTestCase):
    def test_view_markdown(self):
        result = self.invoke(["-f", "md", "page", "view", "page1"])
        self.assertEqual(result.exit_code, 0)
        self.assertTrue(result.output.startswith("# Project plan\n\n## Goals\n\n- More\n"))

    def test_view_json_has_page_and_blocks(self):
        result = self.invoke(["-f", "json", "page", "view", "page1"])
        self.assertEqual(result.exit_code, 0)
        payload = _parse_first_json_blob(result.output)
        self.assertEqual(payload["page"]["id"], "page1")
        self.assertEqual([b["id"] for b in payload["blocks"]["results"]], ["h", "t1"])

    def test_create_under_page_requires_title(self):
        result = self.invoke(["page", "create", "page1"])
        self.assertEqual(result.exit_code, 2)
        self.assertIn("--title is required", result.output)

    def test_create_under_page_with_body(self):
        result = self.invoke(["page", "create", "page1", "--title", "Notes", "--body", "hello"])
        self.assertEqual(result.exit_code, 0)
        self.assertIn("Created: Notes", result.output)
        (body,) = self.calls("create_page")[0]
        self.assertEqual(body["parent"], {"page_id": "page1"})
        self.assertEqual(body["properties"]["title"], {"title": [{"text": {"content": "Notes"}}]})
        self.assertEqual(body["children"][0]["type"], "paragraph")

    def test_create_database_row(self):
        result = self.invoke(["page", "create", "db1", "--db", "--title", "Row", "Count=3", "Status=Todo"])
        self.assertEqual(result.exit_code, 0)
        (body,) = self.calls("create_page")[0]
        self.assertEqual(body["parent"], {"database_id": "db1"})
        self.assertEqual(body["properties"]["Name"], {"title": [{"text": {"content": "Row"}}]})
        self.assertEqual(body["properties"]["Count"], {"number": 3.0})
        self.assertEqual(body["properties"]["Status"], {"select": {"name": "Todo"}})

    def test_set_unknown_property(self):
        result = self.invoke(["page", "set", "page1", "Bogus=1"])
        self.assertEqual(result.exit_code, 2)
        self.assertIn("'Bogus' not found in page", result.output)

    def test_set_bad_assignment(self):
        result = self.invoke(["page", "set", "page1", "NoEquals"])
        self.assertEqual(result.exit_code, 2)

    def test_archive_and_restore(self):
        self.assertIn("Page archived", self.invoke(["page", "delete", "page1"]).output)
        self.assertIn("Page restored", self.invoke(["page", "restore", "page1"]).output)
        self.assertEqual(
            self.calls("update_page"),
            [("page1", {"archived": True}), ("page1", {"archived": False})],
        )

    def test_link_and_unlink(self):
        self.invoke(["page", "link", "page1", "--prop", "Related", "--to", "added"])
        self.invoke(["page", "unlink", "page1", "--prop", "Related", "--from", "other"])
        linked, unlinked = self.calls("update_page")
        self.assertEqual(linked[1], {"properties": {"Related": {"relation": [{"id": "other"}, {"id": "added"}]}}})
        self.assertEqual(unlinked[1], {"properties": {"Related": {"relation": []}}})


class DatabaseTests(CliTestCase):
    def test_query_sends_compiled_filter_and_sort(self):
        result = self.invoke(
            ["-f", "json", "db", "query", "db1", "-F", "Status=Done", "-F", "Count>=3", "-s", "Count:desc", "-l", "5"]
        )
        self.assertEqual(result.exit_code, 0)
        (database_id, body) = self.calls("query_database")[0]
        self.assertEqual(database_id, "db1")
        self.assertEqual(
            body,
            {
                "filter": {
                    "and": [
                        {"property": "Status", "select": {"equals": "Done"}},
                        {"property": "Count", "number": {"greater_than_or_equal_to": 3.0}},
                    ]
                },
                "sorts": [{"property": "Count", "direction": "descending"}],
                "page_size": 5,
            },
        )
        self.assertEqual(_parse_first_json_blob(result.output)["next_cursor"], "cur-2")

    def test_query_table_mentions_next_cursor(self):
        result = self.invoke(["db", "query", "db1"])
        self.assertEqual(result.exit_code, 0)
        self.assertIn("First", result.output)
        self.assertIn("✓", result.output)
        self.assertIn("--cursor cur-2", result.output)

    def test_query_unknown_property(self):
        result = self.invoke(["db", "query", "db1", "-F", "Bogus=1"])
        self.assertEqual(result.exit_code, 2)
        self.assertNotIn("query_database", [call[0] for call in FakeClient.calls])

    def test_query_without_operator(self):
        result = self.invoke(["db", "query", "db1", "-F", "Status"])
        self.assertEqual(result.exit_code, 2)

    def test_add_bulk_collects_errors(self):
        rows = [{"Name": "A", "Bogus": 1, "Done": True}, {"Name": "fail"}, {"Name": "C", "Count": 7}]
        path = Path(self.tmp.name) / "rows.json"
        path.write_text(json.dumps(rows))

        result = self.invoke(["-f", "json", "db", "add-bulk", "db1", "--file", str(path)])
        self.assertEqual(result.exit_code, 0)
        summary = _parse_first_json_blob(result.output)
        self.assertEqual(summary["created"], 2)
        self.assertEqual(summary["total"], 3)
        self.assertEqual(len(summary["errors"]), 2)
        self.assertIn("row 1: property 'Bogus' not found", summary["errors"][0])
        self.assertIn("row 2:", summary["errors"][1])

        first_body = self.calls("create_page")[0][0]
        self.assertEqual(first_body["properties"]["Done"], {"checkbox": True})
        self.assertNotIn("Bogus", first_body["properties"])
        third_body = self.calls("create_page")[2][0]
        self.assertEqual(third_body["properties"]["Count"], {"number": 7.0})

    def test_add_bulk_text_summary(self):
        path = Path(self.tmp.name) / "rows.json"
        path.write_text(json.dumps([{"Name": "A"}, {"Name": "fail"}]))
        result = self.invoke(["db", "add-bulk", "db1", "--file", str(path)])
        self.assertEqual(result.exit_code, 0)
        self.assertIn("✓ 1/2 rows created", result.output)
        self.assertIn("  ✗ row 2:", result.output)

    def test_add_bulk_rejects_empty_and_malformed_files(self):
        path = Path(self.tmp.name) / "rows.json"
        for content in ("[]", "{}", "not json"):
            path.write_text(content)
            with self.subTest(content=content):
                self.assertEqual(self.invoke(["db", "add-bulk", "db1", "--file", str(path)]).exit_code, 2)

    def test_add_bulk_missing_file(self):
        result = self.invoke(["db", "add-bulk", "db1", "--file", str(Path(self.tmp.name) / "absent.json")])
        self.assertEqual(result.exit_code, 1)

    def test_update_needs_something(self):
        result = self.invoke(["db", "update", "db1"])
        self.assertEqual(result.exit_code, 2)
        self.assertIn("nothing to update", result.output)

    def test_view_lists_schema(self):
        result = self.invoke(["db", "view", "db1"])
        self.assertEqual(result.exit_code, 0)
        self.assertIn("Todo, Done", result.output)


class BlockTests(CliTestCase):
    def test_list_depth_builds_tree(self):
        result = self.invoke(["-f", "json", "block", "list", "page1", "--depth", "2"])
        self.assertEqual(result.exit_code, 0)
        results = _parse_first_json_blob(result.output)["results"]
        self.assertNotIn("children", results[0])
        self.assertEqual(results[1]["children"][0]["id"], "p")

    def test_list_renders_nested_text(self):
        result = self.invoke(["block", "list", "page1", "--depth", "2"])
        self.assertEqual(result.exit_code, 0)
        self.assertIn("▸ More\n  hidden\n", result.output)

    def test_append_alias_type(self):
        result = self.invoke(["block", "append", "page1", "Do it", "--type", "todo"])
        self.assertEqual(result.exit_code, 0)
        self.assertIn("1 block(s) appended", result.output)
        _, children, after = self.calls("append_block_children")[0]
        self.assertEqual(children[0]["type"], "to_do")
        self.assertIsNone(after)

    def test_append_markdown_file(self):
        path = Path(self.tmp.name) / "notes.md"
        path.write_text("# Heading\n\n- one\n- two\n")
        result = self.invoke(["block", "append", "page1", "--file", str(path)])
        self.assertEqual(result.exit_code, 0)
        self.assertIn("3 block(s) appended", result.output)

    def test_append_requires_content(self):
        result = self.invoke(["block", "append", "page1"])
        self.assertEqual(result.exit_code, 2)
        self.assertIn("text content or --file is required", result.output)

    def test_insert_after(self):
        result = self.invoke(["block", "insert", "page1", "Between", "--after", "h"])
        self.assertEqual(result.exit_code, 0)
        self.assertEqual(self.calls("append_block_children")[0][2], "h")

    def test_update_reads_existing_type(self):
        result = self.invoke(["block", "update", "h", "--text", "New goals"])
        self.assertEqual(result.exit_code, 0)
        self.assertEqual(
            self.calls("update_block")[0],
            ("h", {"heading_2": {"rich_text": [{"text": {"content": "New goals"}}]}}),
        )

    def test_delete_continues_past_failures(self):
        result = self.invoke(["block", "delete", "one", "bad", "two"])
        self.assertEqual(result.exit_code, 0)
        self.assertIn("✗ Failed to delete bad", result.output)
        self.assertIn("✓ 2 block(s) deleted", result.output)
        self.assertEqual(self.calls("delete_block"), [("one",), ("two",)])

    def test_delete_json_summary(self):
        result = self.invoke(["-f", "json", "block", "delete", "bad"])
        summary = _parse_first_json_blob(result.output)
        self.assertEqual(summary, {"deleted": 0, "total": 1, "errors": ["bad: object_not_found: Could not find block"]})


class ApiTests(CliTestCase):
    def test_raw_request_with_body(self):
        result = self.invoke(["api", "post", "v1/search", "--body", '{"query": "x"}'])
        self.assertEqual(result.exit_code, 0)
        self.assertEqual(self.calls("request_raw"), [("POST", "/v1/search", {"query": "x"})])
        self.assertEqual(_parse_first_json_blob(result.output), {"ok": True})

    def test_body_from_stdin(self):
        result = self.invoke(["api", "PATCH", "/v1/pages/p"], input='{"archived": true}')
        self.assertEqual(result.exit_code, 0)
        self.assertEqual(self.calls("request_raw")[0][2], {"archived": True})

    def test_invalid_body(self):
        result = self.invoke(["api", "POST", "/v1/search", "--body", "{nope"])
        self.assertEqual(result.exit_code, 2)


class PageExtraTests(CliTestCase):
    def test_move(self):
        result = self.invoke(["page", "move", "page1", "--to", "12345678123412341234123456789abc"])
        self.assertEqual(result.exit_code, 0)
        self.assertIn("Page moved to 12345678-1234-1234-1234-123456789abc", result.output)
        self.assertEqual(self.calls("move_page"), [("page1", "12345678-1234-1234-1234-123456789abc")])

    def test_move_requires_target(self):
        result = self.invoke(["page", "move", "page1"])
        self.assertEqual(result.exit_code, 2)
        self.assertEqual(self.calls("move_page"), [])

    def test_props_lists_all(self):
        result = self.invoke(["page", "props", "page1"])
        self.assertEqual(result.exit_code, 0)
        self.assertIn("Project plan (title)", result.output)
        self.assertIn("other (relation)", result.output)
        self.assertEqual(self.calls("get_page_property"), [])

    def test_props_single_property(self):
        result = self.invoke(["page", "props", "page1", "r"])
        self.assertEqual(result.exit_code, 0)
        self.assertEqual(self.calls("get_page_property"), [("page1", "r")])
        self.assertEqual(_parse_first_json_blob(result.output)["id"], "r")

    def test_open_launches_browser(self):
        with patch.object(cli_mod.click, "launch") as launch:
            result = self.invoke(["page", "open", "12345678-1234-1234-1234-123456789abc"])
        self.assertEqual(result.exit_code, 0)
        launch.assert_called_once_with("https://www.notion.so/12345678123412341234123456789abc")
        self.assertIn("https://www.notion.so/12345678123412341234123456789abc", result.output)

    def test_db_open_keeps_links(self):
        link = "https://www.notion.so/acme/Tasks-12345678123412341234123456789abc?v=1"
        with patch.object(cli_mod.click, "launch") as launch:
            result = self.invoke(["db", "open", link])
        self.assertEqual(result.exit_code, 0)
        launch.assert_called_once_with(link)


class DatabaseSchemaTests(CliTestCase):
    def test_create_with_columns(self):
        result = self.invoke(
            ["db", "create", "page1", "--title", "Tasks", "--props", "Status:select, Due:date,broken,Tags : multi_select"]
        )
        self.assertEqual(result.exit_code, 0)
        self.assertIn("Created database: Tasks", result.output)
        (body,) = self.calls("create_database")[0]
        self.assertEqual(body["parent"], {"page_id": "page1"})
        self.assertEqual(body["title"], [{"text": {"content": "Tasks"}}])
        self.assertEqual(
            body["properties"],
            {
                "Name": {"title": {}},
                "Status": {"select": {}},
                "Due": {"date": {}},
                "Tags": {"multi_select": {}},
            },
        )

    def test_create_without_columns(self):
        result = self.invoke(["db", "create", "page1", "--title", "Tasks"])
        self.assertEqual(result.exit_code, 0)
        (body,) = self.calls("create_database")[0]
        self.assertEqual(body["properties"], {"Name": {"title": {}}})

    def test_create_requires_title(self):
        self.assertEqual(self.invoke(["db", "create", "page1"]).exit_code, 2)

    def test_update_title_and_columns(self):
        result = self.invoke(["db", "update", "db1", "--title", "Renamed", "--add-prop", "Owner:people"])
        self.assertEqual(result.exit_code, 0)
        self.assertIn("Database updated", result.output)
        self.assertEqual(
            self.calls("update_database"),
            [("db1", {"title": [{"text": {"content": "Renamed"}}], "properties": {"Owner": {"people": {}}}})],
        )


class UserTests(CliTestCase):
    def test_me(self):
        result = self.invoke(["user", "me"])
        self.assertEqual(result.exit_code, 0)
        self.assertIn("🤖 Helper", result.output)
        self.assertIn("Acme", result.output)

    def test_list_first_page(self):
        result = self.invoke(["user", "list"])
        self.assertEqual(result.exit_code, 0)
        self.assertIn("Ann", result.output)
        self.assertNotIn("Helper", result.output)
        self.assertEqual(self.calls("list_users"), [(None,)])

    def test_list_all_follows_cursor(self):
        result = self.invoke(["-f", "json", "user", "list", "--all"])
        self.assertEqual(result.exit_code, 0)
        self.assertEqual(self.calls("list_users"), [(None,), ("u-2",)])
        self.assertEqual([u["id"] for u in _parse_first_json_blob(result.output)["results"]], ["u1", "bot1"])

    def test_get(self):
        result = self.invoke(["user", "get", "u1"])
        self.assertEqual(result.exit_code, 0)
        self.assertEqual(self.calls("get_user"), [("u1",)])
        self.assertIn("ann@example.com", result.output)


class CommentTests(CliTestCase):
    def test_list(self):
        result = self.invoke(["comment", "list", "12345678123412341234123456789abc"])
        self.assertEqual(result.exit_code, 0)
        self.assertIn("Looks good", result.output)
        self.assertEqual(self.calls("list_comments"), [("12345678-1234-1234-1234-123456789abc", None)])

    def test_add(self):
        result = self.invoke(["comment", "add", "page1", "Ship it"])
        self.assertEqual(result.exit_code, 0)
        self.assertIn("Comment added", result.output)
        self.assertEqual(self.calls("add_comment"), [("page1", "Ship it")])


class FileTests(CliTestCase):
    def test_list(self):
        result = self.invoke(["file", "list"])
        self.assertEqual(result.exit_code, 0)
        self.assertIn("report.pdf", result.output)
        self.assertIn("uploaded", result.output)

    def test_upload_creates_then_sends(self):
        path = Path(self.tmp.name) / "notes.txt"
        path.write_bytes(b"hello world")
        result = self.invoke(["file", "upload", str(path)])
        self.assertEqual(result.exit_code, 0)
        self.assertIn("Uploaded: notes.txt", result.output)
        self.assertIn("11 bytes", result.output)
        self.assertEqual(self.calls("create_file_upload"), [("notes.txt", "text/plain", 11)])
        self.assertEqual(self.calls("send_file_upload"), [("up-new", "notes.txt", "text/plain", b"hello world")])

    def test_upload_unknown_type_is_octet_stream(self):
        path = Path(self.tmp.name) / "blob.zzqx"
        path.write_bytes(b"\x00\x01")
        result = self.invoke(["file", "upload", str(path)])
        self.assertEqual(result.exit_code, 0)
        self.assertEqual(self.calls("create_file_upload")[0][1], "application/octet-stream")

    def test_upload_without_id_stops_before_sending(self):
        path = Path(self.tmp.name) / "notes.txt"
        path.write_bytes(b"hello")
        result = self.invoke(["file", "upload", str(path)], client=NoUploadIdClient)
        self.assertEqual(result.exit_code, 1)
        self.assertIn("no upload ID returned", result.output)
        self.assertEqual(self.calls("send_file_upload"), [])

    def test_upload_missing_file(self):
        result = self.invoke(["file", "upload", str(Path(self.tmp.name) / "absent.txt")])
        self.assertEqual(result.exit_code, 1)
        self.assertEqual(self.calls("create_file_upload"), [])


class MalformedPageTests(CliTestCase):
    def test_all_stops_on_missing_cursor(self):
        class BrokenUsers(FakeClient):
            def list_users(self, page_size=100, start_cursor=None):
                self._record("list_users", start_cursor)
                return {"results": [{"id": "u1"}], "has_more": True}

        result = self.invoke(["user", "list", "--all"], client=BrokenUsers)
        self.assertEqual(result.exit_code, 1)
        self.assertIn("next_cursor is missing", result.output)
        self.assertEqual(self.calls("list_users"), [(None,)])


if __name__ == "__main__":
    unittest.main()
