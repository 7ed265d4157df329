import pytest
from sqlalchemy import inspect

from lens.core.cache import ResultCache
from lens.core.exceptions import InvalidArgumentError
from lens.core.pagination import Pagination
from lens.core.query import QueryInfo
from lens.core.repository import Repository

from blog import Article, Comment


class FakeRedis:
    """Just enough of the redis client for the result cache."""

    def __init__(self):
        self.store = {}
        self.ttls = {}

    def get(self, name):
        return self.store.get(name)

    def set(self, name, value, ex=None):
        self.store[name] = value
        self.ttls[name] = ex
        return True


@pytest.fixture
def articles(session):
    return Repository(session, Article)


def titles(rows):
    return [row.title for row in rows]


# --- fetch_all ---

def test_fetch_all_with_field_equality(articles):
    assert titles(articles.fetch_all({"parameters": {"views": 15, "title": "SQL basics"}})) == ["SQL basics"]
    assert articles.fetch_all({"parameters": {"views": 15, "title": "Python tips"}}) == []


def test_fetch_all_with_operators_and_sort(articles):
    rows = articles.fetch_all({"parameters": {"views:gt": 18}, "sort": {"views": "desc"}})
    assert titles(rows) == ["Python tips", "Old news"]

    rows = articles.fetch_all({"parameters": {"deleted_at:null": "true", "title:nlike": "%SQL%"}})
    assert titles(rows) == ["Python tips"]


def test_fetch_all_accepts_query_info(articles):
    info = QueryInfo(parameters={"id:in": [1, 3]}, sort={"id": "asc"})
    assert [a.id for a in articles.fetch_all(info)] == [1, 3]


def test_limit_zero_differs_from_no_limit(articles):
    assert articles.fetch_all({"limit": 0}) == []
    assert len(articles.fetch_all({})) == 3


def test_offset(articles):
    rows = articles.fetch_all({"sort": {"id": "asc"}, "offset": 1})
    assert [a.id for a in rows] == [2, 3]


def test_count_available_rows(articles):
    page = articles.fetch_all({"sort": {"id": "asc"}, "limit": 1, "offset": 1, "countAvailableRows": True})

    assert isinstance(page, Pagination)
    assert [a.id for a in page.items] == [2]
    assert page.total == 3
    assert page.pages == 3
    assert page.page == 2
    assert page.has_next


def test_count_with_zero_limit(articles):
    page = articles.fetch_all({"limit": 0, "count_available_rows": True})
    assert page.items == []
    assert page.total == 3
    assert page.pages == 0


def test_joined_relations_are_loaded(articles):
    rows = articles.fetch_all({"relations": ["comments"], "parameters": {"id": 1}})

    assert len(rows) == 1
    article = rows[0]
    assert "comments" not in inspect(article).unloaded
    assert sorted(c.text for c in article.comments) == ["great", "thanks"]


def test_with_condition_filters_loaded_collection(articles):
    rows = articles.fetch_all({
        "parameters": {"id": 1},
        "relations": {
            "comments": {
                "joinCondition": lambda aliases: aliases["comments"].text == "great",
                "joinConditionType": "WITH",
            }
        },
    })
    assert [c.text for c in rows[0].comments] == ["great"]


def test_inner_join_drops_roots_without_matches(articles):
    rows = articles.fetch_all({"relations": {"comments": "inner"}, "sort": {"id": "asc"}})
    assert [a.id for a in rows] == [1, 2]


def test_filter_on_joined_entity(articles):
    rows = articles.fetch_all({
        "relations": {"comments": {"joinAlias": "c", "joinType": "inner"}},
        "parameters": {"c.text:eq": "meh"},
    })
    assert titles(rows) == ["SQL basics"]


def test_sort_by_joined_field(session):
    comments = Repository(session, Comment)
    rows = comments.fetch_all({"relations": ["author"], "sort": {"author.name": "desc", "id": "asc"}})
    assert [c.id for c in rows] == [1, 2, 3]

    rows = comments.fetch_all({"relations": ["author"], "sort": {"author.name": "asc", "id": "desc"}})
    assert [c.id for c in rows] == [3, 2, 1]


def test_partial_select(articles):
    rows = articles.fetch_all({"fields": ["id", "title"], "sort": {"id": "asc"}})
    state = inspect(rows[0])
    assert rows[0].title == "Python tips"
    assert "views" in state.unloaded


def test_array_hydration(articles):
    rows = articles.fetch_all({
        "relations": {"comments": {"fields": ["id", "text"]}},
        "parameters": {"id": 2},
        "hydration": "array",
    })
    assert rows == [
        {
            "id": 2,
            "title": "SQL basics",
            "views": 15,
            "deleted_at": None,
            "author_id": 2,
            "comments": [{"id": 3, "text": "meh"}],
        }
    ]


def test_index_by(articles):
    rows = articles.fetch_all({"indexBy": "id"})
    assert sorted(rows) == [1, 2, 3]
    assert rows[2].title == "SQL basics"


# --- fetch_one ---

def test_fetch_one(articles):
    article = articles.fetch_one({"parameters": {"title": "Old news"}})
    assert article.id == 3


def test_fetch_one_without_match_is_none(articles):
    assert articles.fetch_one({"parameters": {"title": "missing"}}) is None


def test_fetch_one_with_many_matches_is_none(articles):
    assert articles.fetch_one({"parameters": {"views:gt": 0}}) is None


def test_fetch_one_with_joined_collection(articles):
    article = articles.fetch_one({"parameters": {"id": 1}, "relations": ["comments"]})
    assert len(article.comments) == 2


def test_fetch_one_as_array(articles):
    assert articles.fetch_one({"parameters": {"id": 2}, "fields": ["id"], "hydration": "ARRAY"}) == {"id": 2}


# --- count ---

def test_count(articles):
    assert articles.count() == 3
    assert articles.count({"parameters": {"views:gte": 40}}) == 2


def test_count_is_not_inflated_by_joins(articles):
    assert articles.count({"relations": ["comments"]}) == 3
    assert articles.count({"relations": {"comments": "inner"}}) == 2


# --- input validation ---

@pytest.mark.parametrize("qi", ["nope", 42, ["parameters"]])
def test_rejects_other_input_types(articles, qi):
    with pytest.raises(InvalidArgumentError):
        articles.fetch_all(qi)
    with pytest.raises(InvalidArgumentError):
        articles.fetch_one(qi)


def test_fetch_rejects_none(articles):
    with pytest.raises(InvalidArgumentError):
        articles.fetch_all(None)


@pytest.mark.parametrize("qi", [{"limit": -1}, {"bogus": True}, {"hydration": "xml"}])
def test_rejects_invalid_mappings(articles, qi):
    with pytest.raises(InvalidArgumentError):
        articles.fetch_all(qi)


def test_explain_does_not_execute(articles):
    plan = articles.explain({"sort": {"nope": "asc"}})
    assert plan.unresolved_sort == {"nope": "ASC"}
    assert articles.metadata.alias == "article"


# --- cache ---

def test_named_result_cache(session):
    client = FakeRedis()
    repo = Repository(session, Article, cache=ResultCache(client))
    qi = {"hydration": "array", "fields": ["id"], "sort": {"id": "asc"}, "cache": {"ttl": 60, "name": "ids"}}

    assert repo.fetch_all(qi) == [{"id": 1}, {"id": 2}, {"id": 3}]
    assert client.ttls == {"lens:ids:all": 60}

    session.delete(session.get(Article, 3))
    session.flush()
    assert repo.fetch_all(qi) == [{"id": 1}, {"id": 2}, {"id": 3}]
    assert repo.fetch_all({**qi, "cache": None}) == [{"id": 1}, {"id": 2}]


def test_computed_cache_keys_differ_per_query(session):
    client = FakeRedis()
    repo = Repository(session, Article, cache=ResultCache(client, prefix="t"))

    repo.fetch_all({"parameters": {"id": 1}, "hydration": "array", "cache": {}})
    repo.fetch_all({"parameters": {"id": 2}, "hydration": "array", "cache": {}})
    repo.fetch_one({"parameters": {"id": 2}, "hydration": "array", "cache": {}})

    assert len(client.store) == 3
    assert all(key.startswith("t:") for key in client.store)
    assert set(client.ttls.values()) == {None}


def test_cache_request_without_backend_runs_uncached(articles):
    assert len(articles.fetch_all({"cache": {"ttl": 5}})) == 3


def test_index_by_is_part_of_the_cache_key(session):
    repo = Repository(session, Article, cache=ResultCache(FakeRedis()))
    qi = {"hydration": "array", "fields": ["id"], "sort": {"id": "asc"}, "cache": {}}

    assert sorted(repo.fetch_all({**qi, "indexBy": "id"})) == [1, 2, 3]
    assert repo.fetch_all(qi) == [{"id": 1}, {"id": 2}, {"id": 3}]


def test_named_cache_is_kept_apart_per_fetch_kind(session):
    client = FakeRedis()
    repo = Repository(session, Article, cache=ResultCache(client))
    qi = {"parameters": {"id": 2}, "fields": ["id"], "hydration": "array", "cache": {"name": "second"}}

    assert repo.fetch_all(qi) == [{"id": 2}]
    assert repo.fetch_one(qi) == {"id": 2}
    assert sorted(client.store) == ["lens:second:all", "lens:second:one"]


# --- joined collections indexed by a field ---

def test_join_index_by_keys_array_collections(articles):
    rows = articles.fetch_all({
        "relations": {"comments": {"indexBy": "id", "fields": ["id", "text"]}},
        "parameters": {"id": 1},
        "hydration": "array",
    })
    assert rows[0]["comments"] == {1: {"id": 1, "text": "great"}, 2: {"id": 2, "text": "thanks"}}


def test_join_index_by_leaves_object_collections_alone(articles):
    article = articles.fetch_one({"relations": {"comments": {"indexBy": "id"}}, "parameters": {"id": 1}})
    assert sorted(c.id for c in article.comments) == [1, 2]
