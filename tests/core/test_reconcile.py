"""Tests for drift detection between local and remote passages."""

from types import SimpleNamespace

from passage_sync.core.reconcile import clean_missing_from_map, compute_reconcile_plan


class TestComputeReconcilePlan:
    """Tests for compute_reconcile_plan."""

    def test_orphans_and_missing(self):
        """Test both kinds of drift at once."""
        plan = compute_reconcile_plan({"f": ["a", "b"]}, [{"id": "b"}, {"id": "c"}])

        assert plan.orphan_passage_ids == ["c"]
        assert plan.missing_passage_ids == ["a"]
        assert not plan.in_sync

    def test_in_sync_when_sets_match(self):
        """Test that ordering differences are not drift."""
        passage_map = {"x.py": ["p1", "p2"], "y.py": ["p3"]}
        server = [{"id": "p3"}, {"id": "p1"}, {"id": "p2"}]

        plan = compute_reconcile_plan(passage_map, server)

        assert plan.in_sync
        assert plan.orphan_passage_ids == []
        assert plan.missing_passage_ids == []

    def test_accepts_objects_with_id(self):
        """Test that passage objects work as well as mappings."""
        server = [SimpleNamespace(id="b", text="..."), SimpleNamespace(id="z")]

        plan = compute_reconcile_plan({"f": ["b"]}, server)

        assert plan.orphan_passage_ids == ["z"]

    def test_duplicates_are_reported_once(self):
        plan = compute_reconcile_plan(
            {"f": ["a"], "g": ["a"]}, [{"id": "c"}, {"id": "c"}]
        )

        assert plan.orphan_passage_ids == ["c"]
        assert plan.missing_passage_ids == ["a"]

    def test_both_empty_is_in_sync(self):
        assert compute_reconcile_plan({}, []).in_sync


class TestCleanMissingFromMap:
    """Tests for clean_missing_from_map."""

    def test_removes_ids_and_empty_files(self):
        """Test that a file whose only ID is missing disappears."""
        passage_map = {"a.py": ["p1"], "b.py": ["p2", "p3"]}

        cleaned = clean_missing_from_map(passage_map, ["p1", "p3"])

        assert cleaned == {"b.py": ["p2"]}
        assert passage_map == {"a.py": ["p1"], "b.py": ["p2", "p3"]}

    def test_idempotent(self):
        """Test that applying the same cleanup twice changes nothing more."""
        passage_map = {"a.py": ["p1"], "b.py": ["p2", "p3"]}

        once = clean_missing_from_map(passage_map, ["p2"])
        twice = clean_missing_from_map(once, ["p2"])

        assert once == twice == {"a.py": ["p1"], "b.py": ["p3"]}

    def test_no_missing_returns_same_object(self):
        passage_map = {"a.py": ["p1"]}

        assert clean_missing_from_map(passage_map, []) is passage_map
