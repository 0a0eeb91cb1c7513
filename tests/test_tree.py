"""Tests for the ownership tree walk and the directory-owners map."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from ownermap.errors import FileFormatError, TreeReadError
from ownermap.tree import (
    LocalTree,
    MemoryTree,
    build_directory_owners,
    build_ownership_set,
    owns_path,
)

ALICE = "Alice Liddell <alice@example.com> (@alice)\n"
BOB = "Bob Builder <bob@example.com> (@bob)\n"
CAROL = "Carol Danvers <carol@example.com>\n"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _write_tree(root: Path, files: dict[str, str]) -> Path:
    for rel, content in files.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
    return root


@pytest.fixture
def repo(tmp_path: Path) -> Path:
    """a/ owned by alice, a/x/ undeclared, b/ owned by bob, c/ undeclared."""
    return _write_tree(tmp_path, {
        "README.md": "hello\n",
        "a/MAINTAINERS": ALICE,
        "a/x/main.go": "package x\n",
        "b/MAINTAINERS": BOB,
        "c/util.go": "package c\n",
    })


@pytest.fixture
def nested(tmp_path: Path) -> Path:
    """a/ owned by alice with a/sub/ re-declared for bob."""
    return _write_tree(tmp_path, {
        "a/MAINTAINERS": ALICE,
        "a/sub/MAINTAINERS": BOB,
        "a/sub/deep/file.go": "package deep\n",
    })


# ---------------------------------------------------------------------------
# Ownership set
# ---------------------------------------------------------------------------

class TestBuildOwnershipSet:
    def test_alice_owns_her_subtree(self, repo: Path) -> None:
        owned = build_ownership_set(repo, "alice@example.com", "")
        assert owned == {".", "a", "a/x", "c"}
        assert "b" not in owned

    def test_bob_owns_his_directory(self, repo: Path) -> None:
        owned = build_ownership_set(repo, "bob@example.com", "")
        assert owned == {".", "b", "c"}
        assert "a" not in owned
        assert "a/x" not in owned

    def test_unlisted_user_only_gets_undeclared_directories(self, repo: Path) -> None:
        owned = build_ownership_set(repo, "carol@example.com", "carol")
        assert owned == {".", "c"}

    def test_match_by_handle(self, repo: Path) -> None:
        owned = build_ownership_set(repo, "", "alice")
        assert "a" in owned

    def test_match_is_case_sensitive(self, repo: Path) -> None:
        owned = build_ownership_set(repo, "Alice@Example.com", "Alice")
        assert "a" not in owned

    def test_empty_identity_never_matches(self, tmp_path: Path) -> None:
        _write_tree(tmp_path, {"a/MAINTAINERS": "Erin Handle <> (@erin)\n"})
        owned = build_ownership_set(tmp_path, "", "")
        assert "a" not in owned

    def test_returns_frozenset(self, repo: Path) -> None:
        assert isinstance(build_ownership_set(repo, "alice@example.com", ""), frozenset)

    def test_idempotent(self, repo: Path) -> None:
        first = build_ownership_set(repo, "alice@example.com", "alice")
        second = build_ownership_set(repo, "alice@example.com", "alice")
        assert first == second

    def test_accepts_tree_reader(self, repo: Path) -> None:
        owned = build_ownership_set(LocalTree(repo), "alice@example.com", "")
        assert owned == {".", "a", "a/x", "c"}

    def test_accepts_string_root(self, repo: Path) -> None:
        owned = build_ownership_set(str(repo), "bob@example.com", "")
        assert "b" in owned


class TestOverrideAndInheritance:
    def test_nested_declaration_excludes_parent_owner(self, nested: Path) -> None:
        owned = build_ownership_set(nested, "alice@example.com", "")
        assert "a" in owned
        assert "a/sub" not in owned

    def test_nested_declaration_grants_child_owner(self, nested: Path) -> None:
        owned = build_ownership_set(nested, "bob@example.com", "")
        assert "a/sub" in owned
        assert "a" not in owned

    def test_undeclared_directory_inherits_nested_owner(self, nested: Path) -> None:
        assert "a/sub/deep" in build_ownership_set(nested, "bob@example.com", "")
        assert "a/sub/deep" not in build_ownership_set(nested, "alice@example.com", "")

    def test_undeclared_directory_under_someone_elses_directory(self, tmp_path: Path) -> None:
        _write_tree(tmp_path, {
            "a/MAINTAINERS": BOB,
            "a/plain/file.go": "",
            "a/plain/deeper/file.go": "",
        })
        owned = build_ownership_set(tmp_path, "carol@example.com", "")
        assert "a" not in owned
        assert "a/plain" not in owned
        assert "a/plain/deeper" not in owned

    def test_redeclaration_below_foreign_directory(self, tmp_path: Path) -> None:
        _write_tree(tmp_path, {
            "a/MAINTAINERS": BOB,
            "a/plain/mine/MAINTAINERS": CAROL,
            "a/plain/mine/below/file.go": "",
        })
        owned = build_ownership_set(tmp_path, "carol@example.com", "")
        assert "a/plain" not in owned
        assert "a/plain/mine" in owned
        assert "a/plain/mine/below" in owned

    def test_declared_root(self, tmp_path: Path) -> None:
        _write_tree(tmp_path, {"MAINTAINERS": ALICE, "lib/file.go": ""})
        assert build_ownership_set(tmp_path, "bob@example.com", "") == frozenset()
        assert build_ownership_set(tmp_path, "alice@example.com", "") == {".", "lib"}


class TestDeclarationFiles:
    def test_empty_declaration_file_is_foreign(self, tmp_path: Path) -> None:
        _write_tree(tmp_path, {"a/MAINTAINERS": "", "a/x/file.go": ""})
        owned = build_ownership_set(tmp_path, "alice@example.com", "")
        assert "a" not in owned
        assert "a/x" not in owned

    def test_file_name_is_case_insensitive(self, tmp_path: Path) -> None:
        _write_tree(tmp_path, {"a/maintainers": BOB})
        assert "a" not in build_ownership_set(tmp_path, "alice@example.com", "")
        assert "a" in build_ownership_set(tmp_path, "bob@example.com", "")

    def test_custom_file_name(self, tmp_path: Path) -> None:
        _write_tree(tmp_path, {"a/OWNERS": BOB})
        owned = build_ownership_set(tmp_path, "alice@example.com", "", file_name="OWNERS")
        assert "a" not in owned

    def test_disabled_owner_still_counts(self, tmp_path: Path) -> None:
        _write_tree(tmp_path, {"a/MAINTAINERS": "#" + ALICE})
        assert "a" in build_ownership_set(tmp_path, "alice@example.com", "alice")

    def test_disabled_owner_excluded_on_request(self, tmp_path: Path) -> None:
        _write_tree(tmp_path, {"a/MAINTAINERS": "#" + ALICE + BOB})
        assert "a" not in build_ownership_set(
            tmp_path, "alice@example.com", "", exclude_inactive=True
        )
        assert "a" in build_ownership_set(
            tmp_path, "bob@example.com", "", exclude_inactive=True
        )

    def test_malformed_file_aborts_build(self, tmp_path: Path) -> None:
        _write_tree(tmp_path, {"a/MAINTAINERS": ALICE + "not a maintainer\n"})
        with pytest.raises(FileFormatError) as exc:
            build_ownership_set(tmp_path, "alice@example.com", "")
        assert exc.value.path == "a/MAINTAINERS"
        assert exc.value.line_number == 2


class TestTraversal:
    def test_hidden_directories_skipped(self, tmp_path: Path) -> None:
        _write_tree(tmp_path, {
            ".git/MAINTAINERS": "garbage\n",
            "src/file.go": "",
        })
        owned = build_ownership_set(tmp_path, "alice@example.com", "")
        assert owned == {".", "src"}

    def test_missing_root(self, tmp_path: Path) -> None:
        with pytest.raises(TreeReadError) as exc:
            build_ownership_set(tmp_path / "missing", "alice@example.com", "")
        assert isinstance(exc.value.cause, OSError)

    def test_undecodable_declaration_file(self, tmp_path: Path) -> None:
        (tmp_path / "a").mkdir()
        (tmp_path / "a" / "MAINTAINERS").write_bytes(b"\xff\xfe Alice <alice@example.com>\n")
        with pytest.raises(TreeReadError) as exc:
            build_ownership_set(tmp_path, "alice@example.com", "")
        assert isinstance(exc.value.cause, UnicodeDecodeError)
        assert exc.value.path.endswith("MAINTAINERS")

    @pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks unavailable")
    def test_symlink_cycle_terminates(self, tmp_path: Path) -> None:
        _write_tree(tmp_path, {"a/file.go": ""})
        os.symlink(tmp_path, tmp_path / "a" / "loop")
        owned = build_ownership_set(tmp_path, "alice@example.com", "")
        assert owned == {".", "a"}


class TestMemoryTree:
    def test_same_result_as_local_tree(self, repo: Path) -> None:
        tree = MemoryTree({
            "README.md": "hello\n",
            "a/MAINTAINERS": ALICE,
            "a/x/main.go": "package x\n",
            "b/MAINTAINERS": BOB,
            "c/util.go": "package c\n",
        })
        for email in ("alice@example.com", "bob@example.com", "carol@example.com"):
            assert build_ownership_set(tree, email, "") == build_ownership_set(repo, email, "")

    def test_unknown_directory(self) -> None:
        with pytest.raises(TreeReadError):
            MemoryTree({"a/file.go": ""}).list_dir("b")

    def test_lists_inferred_directories(self) -> None:
        tree = MemoryTree({"a/b/file.go": "", "top.txt": ""})
        entries = {e.name: e.is_dir for e in tree.list_dir(".")}
        assert entries == {"a": True, "top.txt": False}


# ---------------------------------------------------------------------------
# Directory-owners map
# ---------------------------------------------------------------------------

class TestBuildDirectoryOwners:
    def test_declared_and_inherited_directories(self, nested: Path) -> None:
        owners = build_directory_owners(nested)
        assert [m.username for m in owners["a"]] == ["alice"]
        assert [m.username for m in owners["a/sub"]] == ["bob"]
        assert [m.username for m in owners["a/sub/deep"]] == ["bob"]

    def test_undeclared_ancestry_absent(self, repo: Path) -> None:
        owners = build_directory_owners(repo)
        assert "." not in owners
        assert "c" not in owners
        assert [m.email for m in owners["a/x"]] == ["alice@example.com"]

    def test_disabled_maintainers_kept(self, tmp_path: Path) -> None:
        _write_tree(tmp_path, {"a/MAINTAINERS": "#" + ALICE + BOB})
        owners = build_directory_owners(tmp_path)
        assert [m.username for m in owners["a"]] == ["alice", "bob"]
        assert owners["a"][0].active is False

    def test_disabled_maintainers_excluded_on_request(self, tmp_path: Path) -> None:
        _write_tree(tmp_path, {"a/MAINTAINERS": "#" + ALICE + BOB})
        owners = build_directory_owners(tmp_path, exclude_inactive=True)
        assert [m.username for m in owners["a"]] == ["bob"]

    def test_empty_declaration_clears_inherited_owners(self, tmp_path: Path) -> None:
        _write_tree(tmp_path, {"MAINTAINERS": ALICE, "orphan/MAINTAINERS": ""})
        owners = build_directory_owners(tmp_path)
        assert owners["orphan"] == []


class TestOwnsPath:
    def test_file_in_owned_directory(self) -> None:
        assert owns_path(frozenset({"a"}), "a/z.go")

    def test_root_file(self) -> None:
        assert owns_path(frozenset({"."}), "README.md")

    def test_exact_directory_only(self) -> None:
        assert not owns_path(frozenset({"a"}), "a/b/z.go")
