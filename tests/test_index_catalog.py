import textwrap

import pytest

from queryplan.errors import IndexCatalogError
from queryplan.index.catalog import AUTOGENERATED_MARKER, IndexCatalog
from queryplan.index.models import Index, IndexProperty, Mode
from queryplan.query.ast import SortDirection

SAMPLE = textwrap.dedent(
    """\
    indexes:
    - kind: Person
      properties:
      - name: city
      - name: age
        direction: desc

    # AUTOGENERATED
    - kind: Person
      ancestor: yes
      properties:
      - name: age
    - kind: Shop
      properties:
      - name: tag
      - name: location
        mode: geospatial
    """
)


def test_manual_and_generated_sections():
    catalog = IndexCatalog.from_yaml(SAMPLE)
    assert len(catalog.manual) == 1
    assert len(catalog.generated) == 2
    assert len(catalog) == 3

    manual = catalog.manual[0]
    assert manual.kind == "Person"
    assert not manual.ancestor
    assert manual.properties == (IndexProperty.asc("city"), IndexProperty.desc("age"))

    ancestor, geo = catalog.generated
    assert ancestor.ancestor is True
    assert geo.properties[1] == IndexProperty(name="location", mode=Mode.GEOSPATIAL)
    assert geo.properties[1].direction is None


def test_catalog_without_marker_is_all_manual():
    catalog = IndexCatalog.from_yaml(SAMPLE.replace(AUTOGENERATED_MARKER, ""))
    assert len(catalog.manual) == 3
    assert catalog.generated == ()


def test_to_yaml_reads_back():
    catalog = IndexCatalog.from_yaml(SAMPLE)
    rendered = catalog.to_yaml()
    assert AUTOGENERATED_MARKER in rendered
    assert IndexCatalog.from_yaml(rendered) == catalog


def test_index_yaml_dict():
    index = Index(
        kind="Person",
        ancestor=True,
        properties=(IndexProperty.asc("a"), IndexProperty(name="b", direction="descending")),
    )
    assert index.to_yaml_dict() == {
        "kind": "Person",
        "ancestor": "yes",
        "properties": [{"name": "a"}, {"name": "b", "direction": "desc"}],
    }
    assert index.properties[1].direction is SortDirection.DESCENDING


def test_with_generated_skips_known_indexes():
    catalog = IndexCatalog.from_yaml(SAMPLE)
    new = Index(kind="Person", properties=(IndexProperty.asc("zip"), IndexProperty.desc("age")))
    updated = catalog.with_generated([catalog.manual[0], new, new])
    assert updated.generated[-1] == new
    assert len(updated) == len(catalog) + 1


def test_empty_or_missing_catalog(tmp_path):
    assert len(IndexCatalog.from_yaml("")) == 0
    assert len(IndexCatalog.from_path(tmp_path / "index.yaml")) == 0


def test_write_and_read_path(tmp_path):
    catalog = IndexCatalog.from_yaml(SAMPLE)
    target = tmp_path / "index.yaml"
    catalog.write(target)
    assert IndexCatalog.from_path(target) == catalog


@pytest.mark.parametrize(
    "text, message",
    [
        ("indexes: [", "invalid YAML"),
        ("- kind: Person", "expected a mapping"),
        ("indexes: {kind: Person}", "must be a list"),
        ("indexes:\n- kind: Person\n  properties:\n  - name: a\n    direction: sideways\n", "index #0 is invalid"),
        ("indexes:\n- kind: Person\n  colour: red\n", "index #0 is invalid"),
    ],
)
def test_malformed_catalogs(text, message):
    with pytest.raises(IndexCatalogError, match=message):
        IndexCatalog.from_yaml(text, path="index.yaml")
