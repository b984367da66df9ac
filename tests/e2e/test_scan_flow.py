"""
End-to-end tests for the scan flow: admit → reject → read views.

Runs the whole ScanGate on the memory ledger with a controlled clock.
"""

import threading

import pytest

from scangate.core.models import ScanFilters, ScanRequest
from scangate.service import ScanGate


@pytest.fixture
def gate(memory_settings, clock):
    with ScanGate(memory_settings, clock=clock) as gate:
        yield gate


@pytest.mark.e2e
def test_demo_card_flow(gate, clock):
    """
    Test the reference scenario:
    1. First scan of TEST12345678 for DEMO01 is registered
    2. A second scan shortly after is blocked by the cooldown
    3. Stats, listing and CSV show exactly one scan
    """
    request = ScanRequest.from_payload({"uid": "TEST12345678", "campaign_id": "DEMO01"})

    first = gate.admit(request).to_payload()
    assert first["status"] == "success"
    assert first["message"] == "Scan registered successfully"
    assert first["meta"] == {"total_scans": 1, "daily_scans": 1}

    clock.advance(seconds=30)
    second = gate.admit(request).to_payload()
    assert second["status"] == "error"
    assert second["code"] == "COOLDOWN_ACTIVE"
    assert second["cooldownMinutes"] == 5
    assert second["lastScanTime"] == first["data"]["timestamp"]

    stats = gate.views.stats().to_payload()
    assert stats["totalScans"] == 1
    assert stats["uniqueUids"] == 1
    assert stats["todayScans"] == 1
    assert stats["lastScan"] == first["data"]["timestamp"]

    page = gate.views.list_scans(ScanFilters(uid="TEST12345678")).to_payload()
    assert [s["scan_id"] for s in page["scans"]] == [first["data"]["scan_id"]]

    lines = gate.views.export_csv().split("\n")
    assert len(lines) == 2
    assert lines[1].startswith(f"{first['data']['scan_id']},TEST12345678,DEMO01,")
    assert lines[1].endswith(",true")

    assert gate.views.verify_scan(first["data"]["scan_id"]).checksum == first["data"]["checksum"]


@pytest.mark.e2e
def test_card_readmitted_after_cooldown(gate, clock):
    request = ScanRequest(uid="TEST12345678", campaign_id="DEMO01")

    assert gate.admit(request).admitted
    clock.advance(minutes=5)
    result = gate.admit(request)

    assert result.admitted
    assert result.meta == {"total_scans": 2, "daily_scans": 2}


@pytest.mark.e2e
def test_rejected_attempts_never_reach_views(gate):
    for fields in ({"uid": "SHORT", "campaign_id": "DEMO01"}, {"uid": "TEST12345678"}, {}):
        assert not gate.admit(ScanRequest.from_payload(fields)).admitted

    assert gate.views.stats().total_scans == 0
    assert gate.views.export_csv().count("\n") == 0


@pytest.mark.e2e
def test_simultaneous_scans_of_one_card(gate):
    """Test two racing scans of the same card: exactly one is admitted"""
    barrier = threading.Barrier(2)
    codes = []
    lock = threading.Lock()

    def worker():
        barrier.wait(timeout=5)
        result = gate.admit(ScanRequest(uid="TEST12345678", campaign_id="DEMO01"))
        with lock:
            codes.append(result.code)

    threads = [threading.Thread(target=worker) for _ in range(2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=10)

    assert sorted(codes) == ["COOLDOWN_ACTIVE", "SCAN_REGISTERED"]
    assert gate.views.stats().total_scans == 1


@pytest.mark.e2e
def test_many_cards_admitted_concurrently(gate):
    """Test different cards do not interfere with each other"""
    uids = [f"CARD{n:08d}" for n in range(20)]
    barrier = threading.Barrier(len(uids))
    admitted = []
    lock = threading.Lock()

    def worker(uid):
        barrier.wait(timeout=5)
        result = gate.admit(ScanRequest(uid=uid, campaign_id="DEMO01"))
        with lock:
            admitted.append(result.admitted)

    threads = [threading.Thread(target=worker, args=(uid,)) for uid in uids]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=10)

    assert admitted == [True] * len(uids)
    stats = gate.views.stats()
    assert stats.total_scans == len(uids)
    assert stats.unique_uids == len(uids)
