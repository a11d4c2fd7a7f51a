"""Tests for file-set content hashing."""

import hashlib

from workflow_sync.sync.hashing import (
    WorkflowFile,
    combine_digests,
    compute_digest,
    compute_fileset_digest,
)


def test_digest_is_sha256_hex():
    assert compute_digest(b"test") == hashlib.sha256(b"test").hexdigest()


def test_per_file_digests():
    files = [
        WorkflowFile("file1.js", b"content1"),
        WorkflowFile("file2.js", b"content2"),
    ]
    result = compute_fileset_digest(files)
    assert result.per_file == {
        "file1.js": compute_digest(b"content1"),
        "file2.js": compute_digest(b"content2"),
    }
    assert list(result.per_file) == ["file1.js", "file2.js"]


def test_aggregate_joins_sorted_name_digest_pairs():
    files = [WorkflowFile("b.js", b"B"), WorkflowFile("a.js", b"A")]
    expected = compute_digest(
        f"a.js:{compute_digest(b'A')}|b.js:{compute_digest(b'B')}".encode()
    )
    assert compute_fileset_digest(files).aggregate == expected


def test_aggregate_is_order_independent():
    a = WorkflowFile("a.js", b"alpha")
    b = WorkflowFile("b.js", b"beta")
    assert compute_fileset_digest([a, b]).aggregate == compute_fileset_digest([b, a]).aggregate


def test_aggregate_is_content_sensitive():
    before = compute_fileset_digest([WorkflowFile("a.js", b"alpha"), WorkflowFile("b.js", b"beta")])
    after = compute_fileset_digest([WorkflowFile("a.js", b"alphA"), WorkflowFile("b.js", b"beta")])
    assert before.aggregate != after.aggregate


def test_aggregate_is_set_sensitive():
    base = [WorkflowFile("a.js", b"alpha"), WorkflowFile("b.js", b"beta")]
    extra = base + [WorkflowFile("c.js", b"")]
    fewer = base[:1]
    digests = {compute_fileset_digest(fs).aggregate for fs in (base, extra, fewer)}
    assert len(digests) == 3


def test_renaming_a_file_changes_aggregate():
    one = compute_fileset_digest([WorkflowFile("a.js", b"same")])
    two = compute_fileset_digest([WorkflowFile("b.js", b"same")])
    assert one.aggregate != two.aggregate


def test_empty_fileset_has_stable_digest():
    assert compute_fileset_digest([]).aggregate == combine_digests({}) == compute_digest(b"")
