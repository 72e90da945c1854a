"""Tests for the dashboard listing cache."""

from shortlinks.db.models import Link
from shortlinks.services.listing_cache import LinkListingCache


class Timer:
    def __init__(self):
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


def links(*slugs):
    return [Link(id=i, owner_id="A", slug=slug, original_url="https://example.com") for i, slug in enumerate(slugs)]


def test_set_and_get():
    cache = LinkListingCache()
    assert cache.set("A", links("one"), cache.begin_read("A"))
    assert [link.slug for link in cache.get("A")] == ["one"]
    assert cache.get("B") is None


def test_read_started_before_invalidation_is_discarded():
    cache = LinkListingCache()
    token = cache.begin_read("A")
    cache.invalidate("A")

    assert not cache.set("A", links("one"), token)
    assert "A" not in cache


def test_invalidation_of_other_owner_does_not_discard():
    cache = LinkListingCache()
    token = cache.begin_read("A")
    cache.invalidate("B")

    assert cache.set("A", links("one"), token)


def test_entries_expire():
    timer = Timer()
    cache = LinkListingCache(ttl=10, timer=timer)
    cache.set("A", links("one"), cache.begin_read("A"))

    timer.now = 11
    assert cache.get("A") is None


def test_size_is_bounded():
    cache = LinkListingCache(maxsize=2)
    for owner in ("A", "B", "C"):
        cache.set(owner, links("one"), cache.begin_read(owner))

    assert len(cache) == 2
    assert "C" in cache
