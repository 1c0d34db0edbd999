"""
Tests for the annotation store.

Run with: pytest tests/test_store.py -v
"""
import pytest

from conftest import PAGE_PX, fake_pdf
from pointbook.core.errors import (
    CapacityError,
    PointNotFoundError,
    ProximityError,
    ValidationError,
)
from pointbook.core.ordinals import ordinal_of
from pointbook.core.store import AnnotationStore
from pointbook.models import Point, Project


class TestPlace:
    """Tests for placing points."""

    def test_place_and_proximity_scenario(self, store):
        """A at (0.3, 0.4); B 7px away is refused; B elsewhere gets ordinal 2."""
        a = store.place(0, 1, 0.3, 0.4, {"title": "A"}, page_size_px=PAGE_PX)
        assert ordinal_of(a, store.points) == 1

        with pytest.raises(ProximityError):
            store.place(0, 1, 0.305, 0.405, {"title": "B"}, page_size_px=PAGE_PX)
        assert len(store.points) == 1

        b = store.place(0, 1, 0.6, 0.6, {"title": "B"}, page_size_px=PAGE_PX)
        assert ordinal_of(a, store.points) == 1
        assert ordinal_of(b, store.points) == 2

    def test_proximity_depends_on_zoomed_size(self, store):
        """The same normalized gap is allowed once the page is drawn larger."""
        store.place(0, 1, 0.3, 0.4, page_size_px=PAGE_PX)
        p = store.place(0, 1, 0.305, 0.405, page_size_px=(4000.0, 4000.0))
        assert p.x == pytest.approx(0.305)

    def test_proximity_is_per_page(self, store):
        store.place(0, 1, 0.5, 0.5, page_size_px=PAGE_PX)
        other = store.place(0, 2, 0.5, 0.5, page_size_px=PAGE_PX)
        assert other.page == 2

    def test_coordinates_are_clamped(self, store):
        p = store.place(0, 1, 1.7, -0.2, page_size_px=PAGE_PX)
        assert (p.x, p.y) == (1.0, 0.0)

    def test_unknown_page_rejected(self, store):
        with pytest.raises(ValidationError):
            store.place(0, 3, 0.5, 0.5, page_size_px=PAGE_PX)
        with pytest.raises(ValidationError):
            store.place(4, 1, 0.5, 0.5, page_size_px=PAGE_PX)

    def test_ids_are_monotonic_after_delete(self, store):
        a = store.place(0, 1, 0.1, 0.1, page_size_px=PAGE_PX)
        b = store.place(0, 1, 0.9, 0.9, page_size_px=PAGE_PX)
        store.remove(b.id)
        c = store.place(0, 1, 0.5, 0.5, page_size_px=PAGE_PX)
        assert a.id < b.id < c.id

    def test_seq_counter_increments(self, store):
        store.place(0, 1, 0.1, 0.1, page_size_px=PAGE_PX)
        store.place(0, 1, 0.9, 0.9, page_size_px=PAGE_PX)
        assert store.project.seq_counter == 2

    def test_next_id_follows_loaded_points(self):
        project = Project(name="X", points=[Point(id=7, document_index=0, page=1, x=0.1, y=0.1)])
        s = AnnotationStore(project)
        s.add_document("a.pdf", fake_pdf(1))
        p = s.place(0, 1, 0.9, 0.9, page_size_px=PAGE_PX)
        assert p.id == 8


class TestUpdateRemove:
    """Tests for editing and deleting points."""

    def test_update_merges_and_clamps(self, store):
        p = store.place(0, 1, 0.2, 0.2, {"title": "A"}, page_size_px=PAGE_PX)
        updated = store.update(p.id, note="cracked", x=2.0)
        assert updated.note == "cracked"
        assert updated.title == "A"
        assert updated.x == 1.0
        assert store.get(p.id).note == "cracked"

    def test_update_unknown_field_leaves_state(self, store):
        p = store.place(0, 1, 0.2, 0.2, {"title": "A"}, page_size_px=PAGE_PX)
        with pytest.raises(ValidationError):
            store.update(p.id, document_index=3)
        assert store.get(p.id).document_index == 0

    def test_update_missing_point(self, store):
        with pytest.raises(PointNotFoundError):
            store.update(999, title="x")

    def test_remove_renumbers_page_mates(self, store):
        a = store.place(0, 1, 0.1, 0.1, page_size_px=PAGE_PX)
        b = store.place(0, 1, 0.5, 0.5, page_size_px=PAGE_PX)
        c = store.place(0, 1, 0.9, 0.9, page_size_px=PAGE_PX)
        store.remove(a.id)
        assert ordinal_of(b, store.points) == 1
        assert ordinal_of(c, store.points) == 2

    def test_point_at_finds_nearest(self, store):
        a = store.place(0, 1, 0.5, 0.5, page_size_px=PAGE_PX)
        assert store.point_at(0, 1, 0.505, 0.5, page_size_px=PAGE_PX) == a
        assert store.point_at(0, 1, 0.8, 0.8, page_size_px=PAGE_PX) is None
        assert store.point_at(0, 2, 0.5, 0.5, page_size_px=PAGE_PX) is None


class TestDocuments:
    """Tests for document management and cascade delete."""

    def test_capacity(self):
        s = AnnotationStore(Project(name="X"), max_documents=2)
        s.add_document("a.pdf", fake_pdf(1))
        s.add_document("b.pdf", fake_pdf(1))
        with pytest.raises(CapacityError):
            s.add_document("c.pdf", fake_pdf(1))
        assert len(s.documents) == 2

    def test_blank_name_gets_default(self):
        s = AnnotationStore(Project(name="X"))
        s.add_document("   ", fake_pdf(1))
        assert s.documents[0].name == "drawing-1.pdf"

    def test_remove_document_cascades_and_compacts(self, store):
        store.add_document("elec.pdf", fake_pdf(3), page_count=3)
        store.add_document("mech.pdf", fake_pdf(1), page_count=1)
        store.place(0, 1, 0.1, 0.1, page_size_px=PAGE_PX)
        gone = store.place(1, 2, 0.5, 0.5, page_size_px=PAGE_PX)
        kept = store.place(2, 1, 0.5, 0.5, page_size_px=PAGE_PX)
        store.set_last_page(0, 2)
        store.set_last_page(1, 3)
        store.set_last_page(2, 1)

        removed = store.remove_document(1)

        assert [p.id for p in removed] == [gone.id]
        assert [d.name for d in store.documents] == ["plan.pdf", "mech.pdf"]
        assert store.get(kept.id).document_index == 1
        assert store.project.page_map == {0: 2, 1: 1}
        assert all(p.document_index < len(store.documents) for p in store.points)

    def test_rename_document(self, store):
        store.rename_document(0, "  level-1.pdf ")
        assert store.documents[0].name == "level-1.pdf"
        with pytest.raises(ValidationError):
            store.rename_document(0, "  ")

    def test_last_page_defaults_to_one(self, store):
        assert store.last_page(0) == 1
        store.set_last_page(0, 2)
        assert store.last_page(0) == 2
        with pytest.raises(ValidationError):
            store.set_last_page(0, 3)
