"""
Tests for linked-container cascade marking and update set selection.
"""

import pytest

from dockturn.container.container import MONITOR_ONLY_LABEL
from dockturn.session import SessionState
from dockturn.updates.dependencies import mark_linked_dependencies, select_containers_to_update
from dockturn.updates.types import StaleState, UpdateParams
from tests.test_helpers import make_container, make_record


def _scanned(progress, *records):
    for record in records:
        progress.add_scanned(record.container, record.newest_image_id)


@pytest.mark.unit
class TestMarkLinkedDependencies:

    def test_dependent_of_stale_container_is_linked(self):
        db = make_record(make_container("db"))
        web = make_record(make_container("web", links=["db"]), state=StaleState.NOT_STALE)

        marked = mark_linked_dependencies([db, web])

        assert marked[1].linked is True
        assert marked[1].to_restart is True
        assert marked[1].stale is False

    def test_input_is_not_modified(self):
        db = make_record(make_container("db"))
        web = make_record(make_container("web", links=["db"]), state=StaleState.NOT_STALE)
        records = [db, web]

        mark_linked_dependencies(records)

        assert records[1] is web
        assert web.linked is False

    def test_cascades_down_a_chain(self):
        db = make_record(make_container("db"))
        api = make_record(make_container("api", links=["db"]), state=StaleState.NOT_STALE)
        web = make_record(make_container("web", links=["api"]), state=StaleState.NOT_STALE)

        marked = mark_linked_dependencies([db, api, web])

        assert [r.linked for r in marked] == [False, True, True]

    def test_network_provider_referenced_by_id(self):
        vpn = make_record(make_container("vpn"))
        sidecar = make_record(
            make_container("sidecar", network_mode=f"container:{vpn.id}"),
            state=StaleState.NOT_STALE,
        )

        marked = mark_linked_dependencies([vpn, sidecar])

        assert marked[1].linked is True

    def test_unrelated_containers_untouched(self):
        db = make_record(make_container("db"), state=StaleState.NOT_STALE)
        web = make_record(make_container("web", links=["db"]), state=StaleState.NOT_STALE)

        marked = mark_linked_dependencies([db, web])

        assert [r.linked for r in marked] == [False, False]

    def test_stale_container_is_not_relinked(self):
        db = make_record(make_container("db"))
        web = make_record(make_container("web", links=["db"]))

        marked = mark_linked_dependencies([db, web])

        assert marked[1] is web

    def test_progress_is_told_about_links(self, progress):
        db = make_record(make_container("db"))
        web = make_record(make_container("web", links=["db"]), state=StaleState.NOT_STALE)
        _scanned(progress, db, web)

        mark_linked_dependencies([db, web], progress)

        assert progress.get(web.id).linked is True
        assert progress.get(db.id).linked is False


@pytest.mark.unit
class TestSelectContainersToUpdate:

    def test_reverse_dependency_order(self, progress):
        db = make_record(make_container("db"))
        web = make_record(make_container("web", links=["db"]))
        _scanned(progress, db, web)

        candidates = select_containers_to_update([db, web], UpdateParams(), progress)

        assert [c.name for c in candidates] == ["web", "db"]

    def test_monitor_only_container_excluded(self, progress):
        watched = make_record(make_container("watched", labels={MONITOR_ONLY_LABEL: "true"}))
        app = make_record(make_container("app"))
        _scanned(progress, watched, app)

        candidates = select_containers_to_update([watched, app], UpdateParams(), progress)

        assert [c.name for c in candidates] == ["app"]
        assert progress.get(watched.id).state is SessionState.SCANNED
        assert progress.get(app.id).state is SessionState.UPDATED

    def test_monitor_only_run_selects_nothing(self, progress):
        app = make_record(make_container("app"))
        _scanned(progress, app)

        candidates = select_containers_to_update([app], UpdateParams(monitor_only=True), progress)

        assert candidates == []
        assert progress.get(app.id).state is SessionState.SCANNED

    def test_skipped_entry_is_not_promoted(self, progress):
        broken = make_record(make_container("broken"), state=StaleState.PROBE_ERROR)
        progress.add_skipped(broken.container, "registry unreachable")

        candidates = select_containers_to_update([broken], UpdateParams(), progress)

        assert candidates == [broken]
        assert progress.get(broken.id).state is SessionState.SKIPPED
