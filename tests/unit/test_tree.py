from gitvault.models.vault import ContentObject
from gitvault.services.privacy import is_private_path
from gitvault.services.tree import build_tree


def _file(path: str) -> ContentObject:
    return ContentObject(path=path, name=path.rsplit("/", 1)[-1], content_hash="sha-" + path)


def test_build_tree_synthesizes_directories() -> None:
    tree = build_tree([_file("a/b/c.md")])

    assert [node.path for node in tree] == ["a"]
    assert tree[0].kind == "dir"
    assert tree[0].children[0].path == "a/b"
    assert tree[0].children[0].children[0].path == "a/b/c.md"
    assert tree[0].children[0].children[0].content_hash == "sha-a/b/c.md"


def test_build_tree_sort_order() -> None:
    tree = build_tree(
        [
            _file("zeta.md"),
            _file("Alpha.md"),
            _file("README.md"),
            _file("docs/guide.md"),
        ]
    )

    assert [node.name for node in tree] == ["docs", "README.md", "Alpha.md", "zeta.md"]


def test_build_tree_drops_private_subtrees() -> None:
    tree = build_tree(
        [
            _file("notes/public.md"),
            _file("_private/secret.md"),
            _file("notes/private/hidden.md"),
            _file("notes/_private.draft.md"),
        ],
        is_private=is_private_path,
    )

    assert [node.path for node in tree] == ["notes"]
    assert [child.path for child in tree[0].children] == ["notes/public.md"]


def test_build_tree_empty() -> None:
    assert build_tree([]) == []
