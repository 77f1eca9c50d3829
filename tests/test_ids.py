import pytest

from comptrack.errors import InvalidComponentIdError
from comptrack.ids import ComponentId, valid_id_chunk


def test_parse_full_and_bare_ids() -> None:
    cid = ComponentId.parse("ui/button@1.0.2")
    assert (cid.box, cid.name, cid.version) == ("ui", "button", "1.0.2")
    assert str(cid) == "ui/button@1.0.2"
    assert cid.box_and_name() == "ui/button"

    bare = ComponentId.parse("button")
    assert bare.box == "global"
    assert str(bare) == "global/button"


@pytest.mark.parametrize("raw", ["", "a/b/c", "/button", "ui/", "ui/button@"])
def test_parse_rejects_malformed_ids(raw: str) -> None:
    with pytest.raises(InvalidComponentIdError):
        ComponentId.parse(raw)


def test_box_and_name_equality_ignores_version() -> None:
    released = ComponentId.parse("ui/button@2.0.0")
    local = ComponentId.parse("ui/button")
    assert released != local
    assert released.same_component(local)
    assert released.without_version() == local
    assert released.has_version() and not local.has_version()


def test_from_parts_sanitizes_segments() -> None:
    assert valid_id_chunk("My Button!") == "my-button-"
    cid = ComponentId.from_parts("Src Dir", "Is String")
    assert str(cid) == "src-dir/is-string"
    assert ComponentId.from_parts(None, "foo").box == "global"
