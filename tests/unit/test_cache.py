import cachetools
from resultset.cache import Cache, cacheable_strategy


class FakeStrategy:

    def __init__(self):
        self.calls = 0

    @cacheable_strategy('lookups', ttl=60, maxsize=10)
    def lookup(self, cn, key):
        self.calls += 1
        return f'value-{key}'


class FakeConn:

    def __init__(self):
        self.engine = object()


def test_get_cache_kinds():
    cache = Cache.get_instance()

    assert isinstance(cache.get_cache('plain'), cachetools.LRUCache)
    assert isinstance(cache.get_cache('expiring', ttl=30), cachetools.TTLCache)
    assert cache.get_cache('plain') is cache.get_cache('plain')


def test_clear_cache():
    cache = Cache.get_instance()
    named = cache.get_cache('named')
    named['a'] = 1

    cache.clear_cache('named')
    assert len(named) == 0

    named['b'] = 2
    cache.clear_all()
    assert len(named) == 0


def test_cacheable_strategy():
    strategy, cn = FakeStrategy(), FakeConn()

    assert strategy.lookup(cn, 1) == 'value-1'
    assert strategy.lookup(cn, 1) == 'value-1'
    assert strategy.calls == 1

    strategy.lookup(cn, 1, bypass_cache=True)
    assert strategy.calls == 2

    strategy.lookup(FakeConn(), 1)
    assert strategy.calls == 3
