"""Unit tests for history analytics."""

import json
import math
from datetime import datetime, timedelta, timezone

import pytest

from repopulse.analytics import AnalyticsAggregator, analyze_repository
from repopulse.analytics.aggregator import days_spanned, utc_date_key
from repopulse.extraction import CommitWalker
from repopulse.models import CommitAuthor, CommitMetadata, RepositoryHandle

UTC = timezone.utc
ALICE = CommitAuthor(name="Alice", email="alice@example.com")
BOB = CommitAuthor(name="Bob", email="bob@example.com")


def make_commit(
    hash_suffix: str,
    timestamp: datetime,
    author: CommitAuthor = ALICE,
    files=("main.py",),
    insertions: int = 1,
    deletions: int = 0,
    tasks=(),
) -> CommitMetadata:
    return CommitMetadata(
        hash=hash_suffix.rjust(40, "0"),
        message=f"Commit {hash_suffix}",
        author=author,
        timestamp=timestamp,
        files_changed=tuple(files),
        insertions=insertions,
        deletions=deletions,
        task_references=frozenset(tasks),
    )


@pytest.fixture
def aggregator():
    return AnalyticsAggregator()


class TestAnalyticsAggregator:
    """Tests for AnalyticsAggregator."""

    def test_empty_history(self, aggregator):
        now = datetime(2024, 5, 1, 12, 0, tzinfo=UTC)

        analysis = aggregator.aggregate([], now=now)

        assert analysis.total_commits == 0
        assert analysis.date_range.from_ == now
        assert analysis.date_range.to == now
        assert analysis.authors == ()
        assert analysis.commit_frequency == {}
        assert analysis.file_change_patterns == {}
        assert analysis.task_references == {}
        assert analysis.code_velocity.avg_commits_per_day == 0
        assert analysis.code_velocity.avg_lines_changed == 0

    def test_totals_and_date_range(self, aggregator):
        start = datetime(2024, 1, 1, 9, 0, tzinfo=UTC)
        commits = [
            make_commit("3", start + timedelta(hours=36), insertions=10, deletions=2),
            make_commit("2", start + timedelta(hours=12), insertions=4, deletions=4),
            make_commit("1", start, insertions=6, deletions=0),
        ]

        analysis = aggregator.aggregate(commits)

        assert analysis.total_commits == 3
        assert analysis.date_range.from_ == start
        assert analysis.date_range.to == start + timedelta(hours=36)
        assert analysis.code_velocity.total_lines_added == 20
        assert analysis.code_velocity.total_lines_deleted == 6
        assert analysis.code_velocity.avg_lines_changed == pytest.approx(26 / 3)
        # 36 hours rounds up to two days
        assert analysis.code_velocity.avg_commits_per_day == pytest.approx(1.5)

    def test_single_commit_velocity_is_finite(self, aggregator):
        analysis = aggregator.aggregate([make_commit("1", datetime(2024, 1, 1, tzinfo=UTC))])

        assert analysis.code_velocity.avg_commits_per_day == 1.0
        assert math.isfinite(analysis.code_velocity.avg_lines_changed)

    def test_authors_sorted_by_commit_count(self, aggregator):
        base = datetime(2024, 2, 1, tzinfo=UTC)
        commits = [
            make_commit("1", base, author=ALICE),
            make_commit("2", base + timedelta(days=1), author=BOB, insertions=5),
            make_commit("3", base + timedelta(days=2), author=BOB, insertions=7, deletions=3),
        ]

        authors = aggregator.aggregate(commits).authors

        assert [author.name for author in authors] == ["Bob", "Alice"]
        bob = authors[0]
        assert bob.key == "Bob<bob@example.com>"
        assert bob.commit_count == 2
        assert bob.lines_added == 12
        assert bob.lines_deleted == 3
        assert bob.first_commit == base + timedelta(days=1)
        assert bob.last_commit == base + timedelta(days=2)

    def test_author_window_widens_regardless_of_order(self, aggregator):
        base = datetime(2024, 2, 1, tzinfo=UTC)
        commits = [
            make_commit("2", base + timedelta(days=5)),
            make_commit("1", base),
            make_commit("3", base + timedelta(days=2)),
        ]

        alice = aggregator.aggregate(commits).authors[0]

        assert alice.first_commit == base
        assert alice.last_commit == base + timedelta(days=5)

    def test_same_name_different_email_are_distinct_authors(self, aggregator):
        base = datetime(2024, 2, 1, tzinfo=UTC)
        work_alice = CommitAuthor(name="Alice", email="alice@work.example.com")
        commits = [make_commit("1", base, author=ALICE), make_commit("2", base, author=work_alice)]

        authors = aggregator.aggregate(commits).authors

        assert len(authors) == 2
        assert sum(author.commit_count for author in authors) == 2

    def test_equal_counts_keep_first_seen_order(self, aggregator):
        base = datetime(2024, 2, 1, tzinfo=UTC)
        commits = [make_commit("1", base, author=BOB), make_commit("2", base, author=ALICE)]

        authors = aggregator.aggregate(commits).authors

        assert [author.name for author in authors] == ["Bob", "Alice"]

    def test_frequency_buckets_by_utc_date(self, aggregator):
        """Test that commits in different offsets land in the same UTC day."""
        plus_two = timezone(timedelta(hours=2))
        commits = [
            make_commit("1", datetime(2024, 3, 10, 23, 30, tzinfo=UTC)),
            # 2024-03-10T23:00:00Z
            make_commit("2", datetime(2024, 3, 11, 1, 0, tzinfo=plus_two)),
            make_commit("3", datetime(2024, 3, 11, 8, 0, tzinfo=UTC)),
        ]

        frequency = aggregator.aggregate(commits).commit_frequency

        assert frequency == {"2024-03-10": 2, "2024-03-11": 1}
        assert sum(frequency.values()) == 3

    def test_file_change_patterns_ranked(self, aggregator):
        base = datetime(2024, 4, 1, tzinfo=UTC)
        commits = [
            make_commit("1", base, files=("a.py", "b.py")),
            make_commit("2", base, files=("a.py",)),
            make_commit("3", base, files=("a.py", "c.py", "b.py")),
        ]

        patterns = aggregator.aggregate(commits).file_change_patterns

        assert patterns == {"a.py": 3, "b.py": 2, "c.py": 1}
        assert list(patterns) == ["a.py", "b.py", "c.py"]

    def test_file_change_patterns_limited(self, aggregator):
        base = datetime(2024, 4, 1, tzinfo=UTC)
        files = [f"file_{i:02d}.py" for i in range(60)]
        commits = [
            make_commit("1", base, files=files),
            make_commit("2", base, files=files[:10]),
        ]

        patterns = aggregator.aggregate(commits).file_change_patterns

        assert len(patterns) == 50
        assert all(patterns[name] == 2 for name in files[:10])
        counts = list(patterns.values())
        assert counts == sorted(counts, reverse=True)

    def test_custom_top_files_limit(self):
        base = datetime(2024, 4, 1, tzinfo=UTC)
        commits = [make_commit("1", base, files=("a.py", "b.py", "c.py"))]

        patterns = AnalyticsAggregator(top_files_limit=2).aggregate(commits).file_change_patterns

        assert len(patterns) == 2

    def test_task_grouping(self, aggregator):
        base = datetime(2024, 5, 1, tzinfo=UTC)
        first = make_commit("1", base, tasks=("27.6", "14"))
        second = make_commit("2", base + timedelta(hours=1), tasks=("14",))
        untracked = make_commit("3", base + timedelta(hours=2))

        groups = aggregator.aggregate([first, second, untracked]).task_references

        assert set(groups) == {"27.6", "14"}
        assert groups["14"] == (first, second)
        assert groups["27.6"] == (first,)

    def test_aggregate_is_deterministic(self, aggregator):
        base = datetime(2024, 5, 1, tzinfo=UTC)
        commits = [
            make_commit("1", base, tasks=("1",)),
            make_commit("2", base + timedelta(days=3), author=BOB, files=("x.py", "y.py")),
        ]

        assert aggregator.aggregate(commits) == aggregator.aggregate(commits)

    def test_report_cannot_be_mutated(self, aggregator):
        base = datetime(2024, 5, 1, tzinfo=UTC)
        commit = make_commit("1", base, tasks=("14",))

        analysis = aggregator.aggregate([commit])

        with pytest.raises(TypeError):
            analysis.commit_frequency["2024-05-02"] = 1
        with pytest.raises(TypeError):
            analysis.file_change_patterns["other.py"] = 9
        with pytest.raises(TypeError):
            analysis.task_references["99"] = (commit,)
        with pytest.raises(AttributeError):
            analysis.task_references["14"].append(commit)
        with pytest.raises(AttributeError):
            analysis.authors.append(analysis.authors[0])

    def test_report_serializes_with_from_alias(self, aggregator):
        analysis = aggregator.aggregate([make_commit("1", datetime(2024, 1, 1, tzinfo=UTC), tasks=("5",))])

        data = analysis.model_dump(mode="json", by_alias=True)

        assert "from" in data["date_range"]
        assert data["total_commits"] == 1
        assert data["commit_frequency"] == {"2024-01-01": 1}
        assert data["file_change_patterns"] == {"main.py": 1}
        assert data["task_references"]["5"][0]["hash"] == "1".rjust(40, "0")
        assert json.loads(analysis.model_dump_json())["task_references"]["5"][0]["task_references"] == ["5"]


def test_utc_date_key():
    assert utc_date_key(datetime(2024, 1, 1, 1, 0, tzinfo=timezone(timedelta(hours=5)))) == "2023-12-31"
    assert utc_date_key(datetime(2024, 1, 1, 1, 0)) == "2024-01-01"


def test_days_spanned():
    start = datetime(2024, 1, 1, tzinfo=UTC)

    assert days_spanned(start, start) == 1
    assert days_spanned(start, start + timedelta(hours=1)) == 1
    assert days_spanned(start, start + timedelta(days=1)) == 1
    assert days_spanned(start, start + timedelta(days=1, seconds=1)) == 2


def test_analyze_repository(test_repo, settings):
    """Test the walk-then-aggregate pipeline on a real repository."""
    analysis = analyze_repository(RepositoryHandle(path=test_repo), walker=CommitWalker(settings))

    assert analysis.total_commits == 3
    assert [author.name for author in analysis.authors] == ["Test User"]
    assert analysis.file_change_patterns == {"main.py": 2, "README.md": 1}
    assert set(analysis.task_references) == {"3", "7"}
    assert analysis.code_velocity.total_lines_added == 4
    assert analysis.code_velocity.total_lines_deleted == 1


def test_analyze_repository_not_a_repo(tmp_dir, settings):
    analysis = analyze_repository(RepositoryHandle(path=tmp_dir), walker=CommitWalker(settings))

    assert analysis.total_commits == 0
