"""Tests for discussions_sync.sync.planner -- upload and download planning."""

from discussions_sync.sync import frontmatter
from discussions_sync.sync.models import (
    AttachLabels,
    CreateLabel,
    CreateLocal,
    CreateRemote,
    Direction,
    LocalDocument,
    RemoteLabel,
    RemoteRecord,
    RepositoryLabelContext,
    SyncPair,
    UpdateLocalContent,
    UpdateLocalMetadata,
    UpdateRemoteContent,
    UpdateRemoteLabels,
    UpdateRemoteMetadata,
)
from discussions_sync.sync.planner import normalize_body, plan_download, plan_upload

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

HELLO = """---
slug: hello-world
published: 01/02/2024
tags: [go, systems]
---
Hello from Go.
"""


def _context(**overrides) -> RepositoryLabelContext:
    defaults = {"repository_id": "R_1", "category_id": "C_1", "known_labels": {}}
    defaults.update(overrides)
    return RepositoryLabelContext(**defaults)


def _doc(path: str, text: str) -> LocalDocument:
    return LocalDocument.from_text(path, text)


def _record(
    body: str,
    number: int = 1,
    title: str = "Title",
    labels: tuple = (),
) -> RemoteRecord:
    return RemoteRecord(
        id=f"D_{number}",
        number=number,
        title=title,
        body=body,
        labels=[RemoteLabel(id=f"L_{name}", name=name) for name in labels],
    )


def _pair(doc: LocalDocument, record: RemoteRecord) -> SyncPair:
    return SyncPair(slug=doc.slug, local=doc, remote=record)


# ---------------------------------------------------------------------------
# normalize_body
# ---------------------------------------------------------------------------


class TestNormalizeBody:
    def test_crlf_and_trailing_whitespace(self):
        assert normalize_body("a  \r\nb\t\r\n\r\n\r\n") == "a\nb"

    def test_bom_stripped(self):
        assert normalize_body("\ufeffa") == "a"

    def test_leading_whitespace_significant(self):
        assert normalize_body("  a") != normalize_body("a")


# ---------------------------------------------------------------------------
# Upload
# ---------------------------------------------------------------------------


class TestPlanUploadNew:
    def test_hello_world(self):
        doc = _doc("hello-world.md", HELLO)
        plan = plan_upload([], [doc], _context())

        assert plan.direction == Direction.UPLOAD
        kinds = [type(m) for m in plan.new]
        assert kinds == [CreateRemote, CreateLabel, CreateLabel, AttachLabels]
        assert [m.name for m in plan.new[1:3]] == ["tag/go", "tag/systems"]

        create = plan.new[0]
        assert create.title == "hello-world"
        assert create.category_id == "C_1"
        assert create.body == (
            "---\nslug: hello-world\npublished: 2024-01-02\n---\nHello from Go.\n"
        )

        attach = plan.new[3]
        assert attach.label_names == ("tag/go", "tag/systems")
        assert attach.remote_id is None
        assert plan.frontmatter == plan.labels == plan.content == []

    def test_known_labels_not_created(self):
        doc = _doc("hello-world.md", HELLO)
        plan = plan_upload(
            [], [doc], _context(known_labels={"tag/go": "L1", "tag/systems": "L2"})
        )
        assert [type(m) for m in plan.new] == [CreateRemote, AttachLabels]

    def test_shared_new_label_planned_once(self):
        a = _doc("a.md", "---\nslug: a\ntags: [shared]\n---\n")
        b = _doc("b.md", "---\nslug: b\ntags: [shared]\n---\n")
        plan = plan_upload([], [a, b], _context())
        creations = [m for m in plan.new if isinstance(m, CreateLabel)]
        assert [(m.slug, m.name) for m in creations] == [("a", "tag/shared")]
        attaches = [m for m in plan.new if isinstance(m, AttachLabels)]
        assert [m.slug for m in attaches] == ["a", "b"]

    def test_no_labels_no_attach(self):
        doc = _doc("plain.md", "---\nslug: plain\n---\nText\n")
        plan = plan_upload([], [doc], _context())
        assert [type(m) for m in plan.new] == [CreateRemote]

    def test_title_override_and_description(self):
        doc = _doc(
            "x.md",
            "---\nslug: x\ntitle: Nice Title\ndescription: About x\n---\nbody",
        )
        create = plan_upload([], [doc], _context()).new[0]
        assert create.title == "Nice Title"
        metadata, body = frontmatter.parse(create.body)
        assert metadata == {"slug": "x", "description": "About x"}
        assert body == "body"

    def test_series_and_draft_labels(self):
        doc = _doc("x.md", "---\nslug: x\nseries: intro\ndraft: true\n---\n")
        plan = plan_upload([], [doc], _context())
        creations = {m.name: m.description for m in plan.new if isinstance(m, CreateLabel)}
        assert creations == {"series/intro": "intro", "state/draft": None}

    def test_bad_date_kept_with_warning(self):
        doc = _doc("x.md", "---\nslug: x\npublished: 2024/01\n---\n")
        plan = plan_upload([], [doc], _context())
        metadata, _ = frontmatter.parse(plan.new[0].body)
        assert metadata["published"] == "2024/01"
        assert len(plan.warnings) == 1
        assert plan.warnings[0].startswith("x.md: Invalid date")

    def test_earlier_warnings_carried(self):
        plan = plan_upload([], [], _context(), warnings=["skipped bad.md"])
        assert plan.warnings == ["skipped bad.md"]
        assert plan.is_empty


class TestPlanUploadPaired:
    REMOTE = "---\nslug: s\npublished:   2024-01-02\n---\nOld body.\n"

    def test_in_sync_pair_plans_nothing(self):
        doc = _doc("s.md", "---\nslug: s\npublished: 01/02/2024\n---\nOld body.\n")
        plan = plan_upload([_pair(doc, _record(self.REMOTE))], [], _context())
        assert plan.is_empty

    def test_whitespace_only_difference_ignored(self):
        doc = _doc(
            "s.md", "---\nslug: s\npublished: 01/02/2024\n---\r\nOld body.   \r\n\r\n"
        )
        plan = plan_upload([_pair(doc, _record(self.REMOTE))], [], _context())
        assert plan.content == []

    def test_content_update_keeps_remote_block(self):
        doc = _doc("s.md", "---\nslug: s\npublished: 01/02/2024\n---\nNew body.\n")
        plan = plan_upload([_pair(doc, _record(self.REMOTE))], [], _context())

        assert plan.frontmatter == []
        [update] = plan.content
        assert isinstance(update, UpdateRemoteContent)
        assert update.remote_id == "D_1"
        assert update.title == "s"
        assert update.apply(update.original_body) == (
            "---\nslug: s\npublished:   2024-01-02\n---\nNew body.\n"
        )

    def test_frontmatter_update(self):
        doc = _doc(
            "s.md",
            "---\nslug: s\npublished: 02/03/2024\ndescription: New\n---\nOld body.\n",
        )
        plan = plan_upload([_pair(doc, _record(self.REMOTE))], [], _context())
        [update] = plan.frontmatter
        assert isinstance(update, UpdateRemoteMetadata)
        assert update.changes == {"description": "New", "published": "2024-02-03"}
        metadata, body = frontmatter.parse(update.apply(update.original_body))
        assert metadata == {
            "slug": "s",
            "published": "2024-02-03",
            "description": "New",
        }
        assert body == "Old body.\n"

    def test_missing_local_description_not_removed(self):
        remote = "---\nslug: s\ndescription: Remote only\n---\nb\n"
        doc = _doc("s.md", "---\nslug: s\n---\nb\n")
        plan = plan_upload([_pair(doc, _record(remote))], [], _context())
        assert plan.frontmatter == []

    def test_label_diff(self):
        remote = _record(
            "---\nslug: s\n---\nb\n", labels=("tag/old", "bug", "tag/keep")
        )
        doc = _doc("s.md", "---\nslug: s\ntags: [keep, go]\n---\nb\n")
        plan = plan_upload(
            [_pair(doc, remote)], [], _context(known_labels={"tag/keep": "L_tag/keep"})
        )

        assert [type(m) for m in plan.labels] == [CreateLabel, UpdateRemoteLabels]
        assert plan.labels[0].name == "tag/go"
        assert plan.labels[0].remote_id == "D_1"
        update = plan.labels[1]
        assert update.add_names == ("tag/go",)
        assert update.remove_names == ("tag/old",)
        assert update.remove_ids == ("L_tag/old",)

    def test_labels_in_sync(self):
        remote = _record("---\nslug: s\n---\nb\n", labels=("tag/go", "bug"))
        doc = _doc("s.md", "---\nslug: s\ntags: [go]\n---\nb\n")
        plan = plan_upload([_pair(doc, remote)], [], _context(known_labels={"tag/go": "x"}))
        assert plan.labels == []

    def test_deterministic(self):
        doc = _doc("s.md", "---\nslug: s\ntags: [b, a]\n---\nNew\n")
        pair = _pair(doc, _record(self.REMOTE, labels=("tag/z",)))
        new = _doc("n.md", HELLO)
        assert plan_upload([pair], [new], _context()) == plan_upload(
            [pair], [new], _context()
        )


# ---------------------------------------------------------------------------
# Download
# ---------------------------------------------------------------------------


class TestPlanDownloadNew:
    BODY = "---\nslug: s\npublished: 2024-01-02\n---\nRemote body.\n"

    def test_create_local(self):
        record = _record(
            self.BODY,
            number=5,
            title="Hello World",
            labels=("tag/b", "tag/a", "series/intro", "state/draft", "bug"),
        )
        plan = plan_download([], [record], _context())

        [create] = plan.new
        assert isinstance(create, CreateLocal)
        assert create.local_path == "Hello World.md"
        assert create.remote_id == "D_5"
        metadata, body = frontmatter.parse(create.text)
        assert metadata == {
            "slug": "s",
            "published": "01/02/2024",
            "tags": ["a", "b"],
            "series": "intro",
            "draft": True,
        }
        assert body == "Remote body.\n"

    def test_tags_always_written(self):
        plan = plan_download([], [_record(self.BODY)], _context())
        metadata, _ = frontmatter.parse(plan.new[0].text)
        assert metadata["tags"] == []
        assert "series" not in metadata
        assert "draft" not in metadata

    def test_unsafe_title_sanitized(self):
        plan = plan_download([], [_record(self.BODY, title='What: "now"?')], _context())
        assert plan.new[0].local_path == "What- -now--.md"

    def test_unsafe_title_kept_in_metadata(self):
        plan = plan_download([], [_record(self.BODY, title="C++: a tour?")], _context())
        metadata, _ = frontmatter.parse(plan.new[0].text)
        assert metadata["title"] == "C++: a tour?"

    def test_collision_keeps_title_in_metadata(self):
        plan = plan_download(
            [],
            [_record(self.BODY, number=9, title="Hello")],
            _context(),
            existing_paths=["hello.md"],
        )
        metadata, _ = frontmatter.parse(plan.new[0].text)
        assert metadata["title"] == "Hello"

    def test_title_survives_download_then_upload(self):
        record = _record(self.BODY, number=7, title="C++: a tour?")
        [create] = plan_download([], [record], _context()).new

        edited = frontmatter.replace_body(create.text, "Edited body.\n")
        doc = _doc(create.local_path, edited)
        plan = plan_upload([_pair(doc, record)], [], _context())

        [update] = plan.content
        assert isinstance(update, UpdateRemoteContent)
        assert update.title == "C++: a tour?"

    def test_empty_title_falls_back_to_slug(self):
        plan = plan_download([], [_record(self.BODY, title=" ... ")], _context())
        assert plan.new[0].local_path == "s.md"

    def test_collision_with_existing_file(self):
        plan = plan_download(
            [],
            [_record(self.BODY, number=9, title="Hello")],
            _context(),
            existing_paths=["hello.md"],
        )
        assert plan.new[0].local_path == "Hello-9.md"

    def test_collision_within_plan(self):
        records = [
            _record(self.BODY, number=1, title="Same"),
            _record(self.BODY.replace("slug: s", "slug: t"), number=2, title="Same"),
        ]
        plan = plan_download([], records, _context())
        assert [m.local_path for m in plan.new] == ["Same.md", "Same-2.md"]

    def test_multiple_series_warning(self):
        record = _record(self.BODY, number=3, labels=("series/a", "series/b"))
        plan = plan_download([], [record], _context())
        metadata, _ = frontmatter.parse(plan.new[0].text)
        assert metadata["series"] == "a"
        assert plan.warnings[0].startswith("discussion #3: multiple series labels")

    def test_bad_remote_date(self):
        record = _record("---\nslug: s\npublished: soon\n---\n", number=4)
        plan = plan_download([], [record], _context())
        metadata, _ = frontmatter.parse(plan.new[0].text)
        assert metadata["published"] == "soon"
        assert plan.warnings[0].startswith("discussion #4: Invalid date")


class TestPlanDownloadPaired:
    def test_in_sync(self):
        doc = _doc("s.md", "---\nslug: s\npublished: 01/02/2024\ntags: [go]\n---\nb\n")
        remote = _record("---\nslug: s\npublished: 2024-01-02\n---\nb\n", labels=("tag/go",))
        plan = plan_download([_pair(doc, remote)], [], _context())
        assert plan.is_empty

    def test_metadata_changes_and_removals(self):
        doc = _doc(
            "s.md",
            "---\nslug: s\npublished: 01/02/2024\ntags: [old]\nseries: gone\n"
            "draft: true\nextra: kept\n---\nb\n",
        )
        remote = _record(
            "---\nslug: s\npublished: 2024-05-06\ndescription: D\n---\nb\n",
            labels=("tag/new",),
        )
        plan = plan_download([_pair(doc, remote)], [], _context())

        [update] = plan.frontmatter
        assert isinstance(update, UpdateLocalMetadata)
        assert update.changes == {
            "description": "D",
            "published": "05/06/2024",
            "tags": ["new"],
        }
        assert update.removals == ("series", "draft")

        metadata, body = frontmatter.parse(update.apply(update.original_text))
        assert metadata == {
            "slug": "s",
            "published": "05/06/2024",
            "tags": ["new"],
            "extra": "kept",
            "description": "D",
        }
        assert body == "b\n"

    def test_tag_order_is_not_a_change(self):
        doc = _doc("s.md", "---\nslug: s\ntags: [b, a]\n---\nb\n")
        remote = _record("---\nslug: s\n---\nb\n", labels=("tag/a", "tag/b"))
        plan = plan_download([_pair(doc, remote)], [], _context())
        assert plan.frontmatter == []

    def test_content_update(self):
        text = "---\nslug: s\n# keep this comment\n---\nLocal.\n"
        doc = _doc("s.md", text)
        remote = _record("---\nslug: s\n---\nRemote.\n")
        plan = plan_download([_pair(doc, remote)], [], _context())

        [update] = plan.content
        assert isinstance(update, UpdateLocalContent)
        assert update.local_path == "s.md"
        assert update.apply(update.original_text) == (
            "---\nslug: s\n# keep this comment\n---\nRemote.\n"
        )

    def test_no_label_mutations_on_download(self):
        doc = _doc("s.md", "---\nslug: s\ntags: [x]\n---\nb\n")
        remote = _record("---\nslug: s\n---\nb\n")
        plan = plan_download([_pair(doc, remote)], [], _context())
        assert plan.labels == []
