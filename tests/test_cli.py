import io

from memsim.buddy import BuddyAllocator
from memsim.cli import (
    demonstrate_buddy_features,
    interactive_demo,
    main,
    performance_comparison,
    print_separator,
    run_basic_allocation,
    run_fragmentation_scenario,
    stress_test_all,
)


def test_print_separator_frames_title(capsys):
    print_separator("Title")
    out = capsys.readouterr().out
    rule = "=" * 60
    assert out == f"\n{rule}\n  Title\n{rule}\n"


def test_basic_allocation_releases_everything():
    allocator = BuddyAllocator(8192)
    allocated = run_basic_allocation(allocator)
    assert [size for size, _ in allocated] == [32, 64, 128, 256, 512, 1024, 2048]
    assert len({address for _, address in allocated}) == len(allocated)
    assert allocator.allocated_size == 0
    assert allocator.deallocation_count == allocator.allocation_count


def test_basic_allocation_reports_failures(capsys):
    allocator = BuddyAllocator(1024)
    allocated = run_basic_allocation(allocator)
    out = capsys.readouterr().out
    assert "Failed to allocate 2048 bytes" in out
    assert 2048 not in [size for size, _ in allocated]
    assert allocator.allocated_size == 0


def test_fragmentation_scenario_cleans_up(capsys):
    allocator = BuddyAllocator(8192)
    large = run_fragmentation_scenario(allocator)
    out = capsys.readouterr().out
    assert large is not None
    assert "Successfully allocated large block" in out
    assert allocator.allocated_size == 0
    assert allocator.deallocation_count == allocator.allocation_count


def test_performance_comparison_all_succeed(capsys):
    assert performance_comparison() == [1000]
    out = capsys.readouterr().out
    assert "Successful allocations: 1000/1000" in out


def test_stress_test_zero_duration(capsys):
    allocator = stress_test_all(0)
    out = capsys.readouterr().out
    assert allocator.allocation_count == 0
    assert "Total operations: 0" in out


def test_stress_test_balances_counts():
    allocator = stress_test_all(0.05)
    assert allocator.allocated_size == 0
    assert allocator.allocation_count == allocator.deallocation_count
    assert allocator.allocation_count > 0


def test_demonstrate_buddy_features():
    buddy = demonstrate_buddy_features()
    assert buddy.allocation_count == 3
    assert buddy.deallocation_count == 3
    assert buddy.allocated_size == 0


def test_interactive_allocate_and_deallocate(capsys):
    result = interactive_demo(["allocate 64", "stats", "deallocate 0", "quit"])
    out = capsys.readouterr().out
    assert result == [(None, 64)]
    assert "Deallocated 64 bytes from index 0" in out
    assert "Current allocated: 64 bytes" in out


def test_interactive_invalid_index_and_unknown(capsys):
    result = interactive_demo(["deallocate 5", "frobnicate", "exit"])
    out = capsys.readouterr().out
    assert result == []
    assert "Invalid index or already deallocated" in out
    assert "Unknown command." in out


def test_interactive_double_deallocate(capsys):
    interactive_demo(["allocate 32", "deallocate 0", "deallocate 0"])
    out = capsys.readouterr().out
    assert out.count("Deallocated 32 bytes from index 0") == 1
    assert "Invalid index or already deallocated" in out


def test_interactive_failed_allocation_and_end_of_input(capsys):
    result = interactive_demo(["allocate 4096", "allocate 128"])
    out = capsys.readouterr().out
    assert "Failed to allocate 4096 bytes" in out
    assert len(result) == 1
    assert result[0][1] == 128
    assert result[0][0] is not None


def test_main_declines_interactive(monkeypatch, capsys):
    monkeypatch.setattr("sys.stdin", io.StringIO("n\n"))
    assert main(["--stress-seconds", "0"]) == 0
    out = capsys.readouterr().out
    assert out.rstrip().endswith("All tests completed successfully!")
    assert "Interactive Demo" not in out


def test_main_runs_interactive(monkeypatch, capsys):
    monkeypatch.setattr("sys.stdin", io.StringIO("y\nallocate 32\nquit\n"))
    assert main(["--stress-seconds", "0"]) == 0
    out = capsys.readouterr().out
    assert "Interactive Demo" in out
    assert "Allocated 32 bytes at" in out


def test_main_benchmark_only(capsys):
    assert main(["--benchmark"]) == 0
    out = capsys.readouterr().out
    assert "Performance Comparison" in out
    assert "Stress Test" not in out