import pytest

from search_sync.core.exceptions import ConfigurationError, EntityNotRegisteredError
from search_sync.documents.searchable import Searchable
from search_sync.registry import (
    get_searchable,
    register_searchable,
    registered_entities,
    unregister_searchable,
)

from sample_models import Note, Post


@pytest.fixture(autouse=True)
def clean_registry():
    yield
    for name in registered_entities():
        unregister_searchable(name)


def test_register_and_lookup_by_index_name():
    register_searchable(Post)

    assert get_searchable("posts") is Post
    assert registered_entities() == ["posts"]


def test_register_under_custom_name():
    register_searchable(Note, name="memos")

    assert get_searchable("memos") is Note


def test_registering_twice_is_harmless():
    register_searchable(Post)
    register_searchable(Post)

    assert registered_entities() == ["posts"]


def test_name_clash_is_rejected():
    register_searchable(Post)

    class OtherPosts(Searchable):
        search_index = "posts"
        search_fields = ("title",)
        search_properties = {"title": {"type": "text"}}

    with pytest.raises(ConfigurationError, match="already registered"):
        register_searchable(OtherPosts)


def test_invalid_class_never_enters_registry():
    class Incomplete(Searchable):
        search_index = "incomplete"

    with pytest.raises(ConfigurationError):
        register_searchable(Incomplete)

    assert "incomplete" not in registered_entities()


def test_usable_as_decorator():
    @register_searchable
    class Tag(Searchable):
        search_index = "tags"
        search_fields = ("name",)
        search_properties = {"name": {"type": "keyword"}}

    assert get_searchable("tags") is Tag


def test_unknown_name():
    with pytest.raises(EntityNotRegisteredError):
        get_searchable("nope")
