from pathlib import Path


def track(
    paths: list[str],
    *,
    id: str | None = None,
    main: str | None = None,
    namespace: str | None = None,
    tests: list[str] | None = None,
    exclude: list[str] | None = None,
    override: bool = False,
    root: str | Path | None = None,
):
    from .add import add_components

    return add_components(
        paths,
        id=id,
        main=main,
        namespace=namespace,
        tests=tests or (),
        exclude=exclude or (),
        override=override,
        root=root,
    )


def load_index(root: str | Path | None = None):
    from .config import find_workspace_root
    from .index import ComponentIndex

    return ComponentIndex.load(root if root is not None else find_workspace_root())


def commit(change_set, *, base_path: str | Path | None = None, target=None) -> None:
    if base_path is not None:
        change_set.add_base_path(str(base_path))
    change_set.commit(target)


__all__ = [
    "track",
    "load_index",
    "commit",
]
