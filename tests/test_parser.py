"""Functional tests for vault/parser.py: title extraction, frontmatter and tasks."""

from datetime import date

from prioritymatrix.vault.parser import parse_note, parse_tasks


class TestExtractTitle:
    """Tests for the title extraction precedence: frontmatter > H1 > filename."""

    def test_title_from_frontmatter(self):
        content = "---\ntitle: My Custom Title\n---\n\n# Heading One\n\nSome content."
        note = parse_note("notes/test.md", content)
        assert note.title == "My Custom Title"

    def test_title_from_h1_when_no_frontmatter_title(self):
        content = "---\neisenhower_status: urgent_important\n---\n\n# First Heading\n\nBody text."
        note = parse_note("notes/test.md", content)
        assert note.title == "First Heading"

    def test_title_from_filename_when_only_h2_exists(self):
        content = "## This is H2 not H1\n\nSome text."
        note = parse_note("notes/fallback.md", content)
        assert note.title == "fallback"

    def test_non_string_frontmatter_title_skipped(self):
        content = "---\ntitle:\n  - item1\n  - item2\n---\n\n# Real Title\n\nContent."
        note = parse_note("notes/test.md", content)
        assert note.title == "Real Title"


class TestParseNote:
    def test_frontmatter_properties(self):
        content = "---\neisenhower_status: schedule\ndue_date: 2024-05-01\n---\n\nBody."
        note = parse_note("Projects/Plan.md", content)
        assert note.path == "Projects/Plan.md"
        assert note.frontmatter["eisenhower_status"] == "schedule"
        assert note.frontmatter["due_date"] == date(2024, 5, 1)
        assert note.content.strip() == "Body."

    def test_no_frontmatter(self):
        note = parse_note("plain.md", "Just text.")
        assert note.frontmatter == {}
        assert note.title == "plain"


class TestParseTasks:
    def test_open_and_completed_tasks(self):
        content = "# List\n- [ ] Open one #schedule\n- [x] Done one ✅ 2024-05-02\nNot a task"
        tasks = parse_tasks("Tasks.md", content)
        assert [(t.line, t.completed) for t in tasks] == [(1, False), (2, True)]
        assert tasks[0].tags == ["schedule"]
        assert tasks[1].completed_date == "2024-05-02"
        assert tasks[0].key == "Tasks.md-1"

    def test_indented_and_alternate_bullets(self):
        content = "- [ ] Parent\n    - [X] Child\n* [ ] Star\n+ [ ] Plus"
        tasks = parse_tasks("t.md", content)
        assert [t.text for t in tasks] == ["Parent", "Child", "Star", "Plus"]
        assert tasks[1].completed is True

    def test_empty_task_text_skipped(self):
        tasks = parse_tasks("t.md", "- [ ]  \n- [ ] Real")
        assert [t.text for t in tasks] == ["Real"]

    def test_hash_inside_word_is_not_a_tag(self):
        tasks = parse_tasks("t.md", "- [ ] Email about issue#42 and #delegate")
        assert tasks[0].tags == ["delegate"]
