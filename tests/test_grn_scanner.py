"""
Tests for the goods-receipt carton scanner.
"""

import os
import sys
import threading
import unittest

# Add the parent directory to the path to access utils
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from constants.schemas import GRNReference
from utils.grn_scanner import (
    DUPLICATE_IN_CARTON_MSG,
    DUPLICATE_IN_GRN_MSG,
    EMPTY_CODE_MSG,
    NO_REFERENCE_MSG,
    GRNSession,
    GRNState,
    filter_references,
    today_yyyymmdd,
)

PO_REF = GRNReference(
    id="PO-1023", ref_type="PO", ref_no="1023", party="ABC Manufacturing", article="SNEAKER-A1"
)
CAT_REF = GRNReference(
    id="CAT-2045", ref_type="CAT", ref_no="2045", party="Internal Catalog", article="RUNNER-B2"
)


def fill_carton(session, prefix):
    result = None
    for n in range(24):
        result = session.scan(f"{prefix}-{n:02d}")
    return result


class TestGRNSession(unittest.TestCase):

    def setUp(self):
        self.session = GRNSession()
        self.session.select_reference(PO_REF)

    def test_scan_requires_reference(self):
        session = GRNSession()
        self.assertEqual(session.state, GRNState.NO_REFERENCE)
        result = session.scan("P-1")
        self.assertFalse(result.accepted)
        self.assertEqual(result.error, NO_REFERENCE_MSG)
        self.assertEqual(session.current_count, 0)

    def test_empty_and_duplicate_codes(self):
        self.assertEqual(self.session.scan("   ").error, EMPTY_CODE_MSG)

        self.assertTrue(self.session.scan(" P-1 ").accepted)
        self.assertEqual(self.session.current_pairs, ["P-1"])
        self.assertEqual(self.session.scan("P-1").error, DUPLICATE_IN_CARTON_MSG)
        self.assertEqual(self.session.current_count, 1)
        self.assertEqual(self.session.state, GRNState.CARTON_IN_PROGRESS)

    def test_24th_scan_locks_carton(self):
        for n in range(23):
            self.assertIsNone(self.session.scan(f"A-{n:02d}").locked_carton)
        self.assertEqual(self.session.current_count, 23)

        result = self.session.scan("A-23")
        carton = result.locked_carton
        self.assertIsNotNone(carton)
        self.assertEqual(carton.carton_barcode, f"CTN-{today_yyyymmdd()}-PO-1023-001")
        self.assertEqual(len(carton.pair_barcodes), 24)
        self.assertEqual(carton.pair_barcodes[0], "A-00")
        self.assertEqual(carton.pair_barcodes[-1], "A-23")
        self.assertEqual(self.session.current_count, 0)
        self.assertEqual(self.session.carton_serial, 2)
        self.assertEqual(self.session.state, GRNState.CARTON_LOCKED)

        second = fill_carton(self.session, "B").locked_carton
        self.assertTrue(second.carton_barcode.endswith("-002"))

    def test_duplicate_across_cartons(self):
        fill_carton(self.session, "A")
        result = self.session.scan("A-05")
        self.assertFalse(result.accepted)
        self.assertEqual(result.error, DUPLICATE_IN_GRN_MSG)

    def test_rescan_releases_codes(self):
        self.session.scan("X-1")
        self.session.scan("X-2")
        self.session.rescan_carton()
        self.assertEqual(self.session.current_count, 0)
        self.assertTrue(self.session.scan("X-1").accepted)

    def test_remove_carton_needs_confirmation(self):
        carton = fill_carton(self.session, "A").locked_carton

        self.assertFalse(self.session.remove_carton(carton.carton_barcode, lambda prompt: False))
        self.assertEqual(len(self.session.cartons), 1)

        self.assertTrue(self.session.remove_carton(carton.carton_barcode, lambda prompt: True))
        self.assertEqual(self.session.cartons, [])
        self.assertTrue(self.session.scan("A-00").accepted)
        self.assertFalse(self.session.remove_carton("CTN-unknown", lambda prompt: True))

    def test_submit_rules(self):
        self.assertFalse(self.session.can_submit)
        self.assertIsNone(self.session.submit())

        fill_carton(self.session, "A")
        self.session.scan("B-00")
        self.assertFalse(self.session.can_submit)
        self.session.rescan_carton()
        self.assertTrue(self.session.can_submit)

    def test_submit_emits_entries_and_keeps_reference(self):
        fill_carton(self.session, "A")
        fill_carton(self.session, "B")
        entries = []

        item = self.session.submit(entries.append)

        self.assertIsNotNone(item)
        self.assertRegex(item.grn_no, rf"^GRN-{today_yyyymmdd()}-\d{{3}}$")
        self.assertEqual(item.cartons, 2)
        self.assertEqual(item.ref_id, "PO-1023")
        self.assertEqual(len(entries), 2)
        self.assertTrue(all(e.grn_no == item.grn_no for e in entries))
        self.assertEqual(entries[0].ref_type, "PO")
        self.assertEqual(entries[1].pair_barcodes[0], "B-00")

        self.assertIs(self.session.reference, PO_REF)
        self.assertEqual(self.session.cartons, [])
        self.assertEqual(self.session.carton_serial, 1)
        self.assertEqual(self.session.history[0], item)
        self.assertTrue(self.session.scan("A-00").accepted)

    def test_select_reference_starts_fresh(self):
        fill_carton(self.session, "A")
        self.session.scan("B-00")
        self.session.select_reference(CAT_REF)
        self.assertEqual(self.session.state, GRNState.REFERENCE_SELECTED)
        self.assertEqual(self.session.carton_serial, 1)
        self.assertFalse(self.session.is_scanned("A-00"))

    def test_filter_references(self):
        refs = [PO_REF, CAT_REF]
        self.assertEqual(filter_references(refs, ""), refs)
        self.assertEqual(filter_references(refs, "po-10"), [PO_REF])
        self.assertEqual(filter_references(refs, "internal"), [CAT_REF])
        self.assertEqual(filter_references(refs, "zzz"), [])


class TestConcurrentScanning(unittest.TestCase):

    def scan_in_threads(self, session, batches):
        barrier = threading.Barrier(len(batches))

        def worker(codes):
            barrier.wait()
            for code in codes:
                session.scan(code)

        threads = [threading.Thread(target=worker, args=(codes,)) for codes in batches]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

    def test_last_pair_races_lock_one_carton(self):
        session = GRNSession()
        session.select_reference(PO_REF)
        for n in range(23):
            session.scan(f"P-{n:02d}")

        self.scan_in_threads(session, [[f"LAST-{t}"] for t in range(8)])

        self.assertEqual(len(session.cartons), 1)
        self.assertEqual(len(session.cartons[0].pair_barcodes), 24)
        self.assertEqual(session.current_count, 7)

    def test_many_scanners_fill_whole_cartons(self):
        session = GRNSession()
        session.select_reference(CAT_REF)

        self.scan_in_threads(session, [[f"T{t}-{n:03d}" for n in range(50)] for t in range(10)])

        self.assertEqual(len(session.cartons), 20)
        self.assertTrue(all(len(c.pair_barcodes) == 24 for c in session.cartons))
        self.assertEqual(session.current_count, 20)
        barcodes = [c.carton_barcode for c in session.cartons]
        self.assertEqual(len(set(barcodes)), 20)
        self.assertTrue(barcodes[-1].endswith("-020"))


if __name__ == '__main__':
    unittest.main()
