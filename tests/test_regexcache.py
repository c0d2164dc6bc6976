import re
import threading

import pytest

from depvet.regexcache import must_compile_and_cache


def test_returns_same_pattern_object():
    first = must_compile_and_cache(r"^v(\d+)$")
    second = must_compile_and_cache(r"^v(\d+)$")
    assert first is second


def test_compiled_pattern_matches():
    pattern = must_compile_and_cache(r"^pkg:(\w+)/")
    match = pattern.match("pkg:npm/express")
    assert match is not None
    assert match.group(1) == "npm"


def test_invalid_expression_raises():
    with pytest.raises(re.error):
        must_compile_and_cache("(unclosed")


def test_concurrent_callers_share_pattern():
    results = []
    lock = threading.Lock()

    def worker():
        pattern = must_compile_and_cache(r"concurrent-\d+")
        with lock:
            results.append(pattern)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    cached = must_compile_and_cache(r"concurrent-\d+")
    assert len(results) == 8
    assert all(p is cached for p in results)
    assert cached.pattern == r"concurrent-\d+"
    assert cached.fullmatch("concurrent-42") is not None
    assert cached.fullmatch("concurrent-x") is None