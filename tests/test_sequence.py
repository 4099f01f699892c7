"""Tests for sequence code allocation."""

import threading

from shopsync.sequence import SequenceAllocator, code_number, format_code


def test_code_number():
    assert code_number("RCP007", "RCP") == 7
    assert code_number("RCP1000", "RCP") == 1000
    assert code_number("RCP12-draft", "RCP") == 12
    assert code_number("RCPabc", "RCP") == 0
    assert code_number("RET004", "RCP") == 0
    assert code_number(None, "RCP") == 0
    assert code_number(42, "RCP") == 0


def test_format_code_pads_to_three_digits():
    assert format_code("RCP", 3) == "RCP003"
    assert format_code("RET", 1234) == "RET1234"


class TestSequenceAllocator:
    def test_first_code(self):
        assert SequenceAllocator().next_code("RCP", []) == "RCP001"

    def test_follows_highest_existing(self):
        allocator = SequenceAllocator()

        assert allocator.next_code("RCP", ["RCP002", "RCP009", None, "junk"]) == "RCP010"

    def test_never_reissues_within_process(self):
        allocator = SequenceAllocator()

        first = allocator.next_code("RCP", [])
        second = allocator.next_code("RCP", [])

        assert (first, second) == ("RCP001", "RCP002")

    def test_prefixes_independent(self):
        allocator = SequenceAllocator()
        allocator.next_code("RCP", ["RCP005"])

        assert allocator.next_code("RET", []) == "RET001"

    def test_observe_raises_high_water_mark(self):
        allocator = SequenceAllocator()
        allocator.observe("RET", "RET020")
        allocator.observe("RET", "RET003")

        assert allocator.next_code("RET", []) == "RET021"

    def test_release_hands_back_last_code(self):
        allocator = SequenceAllocator()
        allocator.next_code("RCP", [])
        code = allocator.next_code("RCP", [])

        allocator.release("RCP", code)

        assert allocator.next_code("RCP", []) == code

    def test_release_ignores_stale_code(self):
        allocator = SequenceAllocator()
        first = allocator.next_code("RCP", [])
        allocator.next_code("RCP", [])

        allocator.release("RCP", first)

        assert allocator.next_code("RCP", []) == "RCP003"

    def test_concurrent_allocation_unique(self):
        allocator = SequenceAllocator()
        codes = []
        lock = threading.Lock()

        def worker():
            for _ in range(50):
                code = allocator.next_code("RCP", [])
                with lock:
                    codes.append(code)

        threads = [threading.Thread(target=worker) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(set(codes)) == 200
