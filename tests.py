import logging
import tempfile
import unittest
from datetime import date, datetime, timedelta
from pathlib import Path

from cryptography.hazmat.primitives.ciphers.aead import AESGCM

import adherence as eng
import family
import trends
from adherence import DoseStatus
from applog import FileAndRingHandler, RingLog, logger, setup_logging
from config import BUCKET_MEDICINES, Paths
from records import (FamilyMember, Measurement, Medicine, ValidationError,
                     new_measurement, new_medicine, parse_hm)
from service.alert_service import OverdueMonitor
from settings import Settings, SettingsStore
from storage import BucketStore, aes_decrypt, aes_encrypt, get_or_create_key
from strings import TRANSLATIONS, format_lateness, format_long_date, tr, type_label

DAY = datetime(2026, 10, 19)


def _at(hm: str, day: datetime = DAY, seconds: int = 0) -> datetime:
    h, m = map(int, hm.split(":"))
    return day.replace(hour=h, minute=m, second=seconds)


def _med(mid: str, times, type: str = "medicine", frequency: str = "daily") -> Medicine:
    return Medicine(id=mid, name=f"med-{mid}", dosage="1 tablet", type=type,
                    times=list(times), frequency=frequency)


class TestDayIdentity(unittest.TestCase):
    def test_day_key_is_iso_for_all_inputs(self):
        self.assertEqual(eng.day_key(datetime(2026, 3, 5, 23, 59)), "2026-03-05")
        self.assertEqual(eng.day_key(date(2026, 3, 5)), "2026-03-05")
        self.assertEqual(eng.day_key("2026-03-05"), "2026-03-05")

    def test_dose_key(self):
        self.assertEqual(eng.dose_key(_at("07:15"), "08:00"), "2026-10-19 08:00")

    def test_day_label_not_padded(self):
        self.assertEqual(eng.day_label(date(2026, 3, 5)), "5/3")


class TestDoseStatus(unittest.TestCase):
    def test_taken_is_absorbing_for_the_whole_day(self):
        med = eng.mark_taken(_med("a", ["08:00"]), "08:00", _at("07:00"))
        for hm in ("00:00", "07:59", "08:00", "12:00", "23:59"):
            self.assertEqual(eng.dose_status(med, "08:00", _at(hm)), DoseStatus.TAKEN)

    def test_taken_does_not_carry_into_next_day(self):
        med = eng.mark_taken(_med("a", ["08:00"]), "08:00", _at("08:05"))
        tomorrow = _at("09:00", DAY + timedelta(days=1))
        self.assertEqual(eng.dose_status(med, "08:00", tomorrow), DoseStatus.OVERDUE)

    def test_exact_schedule_time_counts_as_overdue(self):
        self.assertEqual(eng.dose_status(_med("a", ["08:00"]), "08:00", _at("08:00")),
                         DoseStatus.OVERDUE)

    def test_due_soon_window(self):
        med = _med("a", ["08:00"])
        self.assertEqual(eng.dose_status(med, "08:00", _at("07:00")), DoseStatus.UPCOMING)
        self.assertEqual(eng.dose_status(med, "08:00", _at("07:01")), DoseStatus.DUE_SOON)
        self.assertEqual(eng.dose_status(med, "08:00", _at("07:59", seconds=59)), DoseStatus.DUE_SOON)

    def test_status_advances_without_regressing(self):
        med = _med("a", ["12:00"])
        start = _at("12:00") - timedelta(minutes=90)
        seen = []
        for i in range(0, 136):
            s = eng.dose_status(med, "12:00", start + timedelta(minutes=i))
            if not seen or seen[-1] != s:
                seen.append(s)
        self.assertEqual(seen, [DoseStatus.UPCOMING, DoseStatus.DUE_SOON, DoseStatus.OVERDUE])


class TestMarkTaken(unittest.TestCase):
    def test_idempotent(self):
        med = _med("a", ["08:00", "20:00"])
        once = eng.mark_taken(med, "08:00", _at("08:10"))
        twice = eng.mark_taken(once, "08:00", _at("09:00"))
        self.assertEqual(once.taken, twice.taken)
        self.assertEqual(once.taken, {"2026-10-19 08:00": True})

    def test_input_not_mutated(self):
        med = _med("a", ["08:00"])
        eng.mark_taken(med, "08:00", _at("08:10"))
        self.assertEqual(med.taken, {})


class TestOverdueCritical(unittest.TestCase):
    def test_threshold_boundary(self):
        meds = [_med("a", ["08:00"])]
        at_30 = eng.overdue_critical(meds, _at("08:30"))
        self.assertEqual(len(at_30), 1)
        self.assertEqual(at_30[0].time, "08:00")
        self.assertEqual(at_30[0].minutes_late, 30)
        self.assertEqual(eng.overdue_critical(meds, _at("08:29")), [])
        self.assertEqual(eng.overdue_critical(meds, _at("08:29", seconds=59)), [])

    def test_taken_doses_are_excluded(self):
        med = eng.mark_taken(_med("a", ["08:00"]), "08:00", _at("09:00"))
        self.assertEqual(eng.overdue_critical([med], _at("11:00")), [])

    def test_encounter_order_and_late_first_view(self):
        meds = [_med("a", ["09:00", "07:00"]), _med("b", ["06:00"]), _med("c", ["23:00"])]
        got = eng.overdue_critical(meds, _at("10:00"))
        self.assertEqual([(o.medicine.id, o.time, o.minutes_late) for o in got],
                         [("a", "09:00", 60), ("a", "07:00", 180), ("b", "06:00", 240)])
        self.assertEqual([o.medicine.id for o in eng.most_late_first(got)], ["b", "a", "a"])

    def test_custom_threshold(self):
        meds = [_med("a", ["08:00"])]
        self.assertEqual(len(eng.overdue_critical(meds, _at("08:10"), threshold_minutes=10)), 1)
        self.assertTrue(eng.is_critical(meds[0], "08:00", _at("08:45")))


class TestDayCompletion(unittest.TestCase):
    def test_empty_catalog_is_zero(self):
        self.assertEqual(eng.day_completion([], DAY), 0)
        self.assertEqual(eng.day_completion([_med("a", [])], DAY), 0)

    def test_three_of_four(self):
        ref = _at("21:00")
        a = eng.mark_taken(eng.mark_taken(_med("a", ["08:00", "20:00"]), "08:00", ref), "20:00", ref)
        b = eng.mark_taken(_med("b", ["09:00"]), "09:00", ref)
        c = _med("c", ["10:00"])
        self.assertEqual(eng.day_completion([a, b, c], ref), 75)
        self.assertEqual(eng.daily_dose_count([a, b, c]), 4)

    def test_rounds_half_up(self):
        ref = _at("23:00")
        times = [f"{h:02d}:00" for h in range(8)]
        med = eng.mark_taken(_med("a", times), "00:00", ref)
        self.assertEqual(eng.day_completion([med], ref), 13)  # 12.5
        med3 = eng.mark_taken(eng.mark_taken(_med("b", ["01:00", "02:00", "03:00"]), "01:00", ref), "02:00", ref)
        self.assertEqual(eng.day_completion([med3], ref), 67)

    def test_frequency_does_not_suppress_daily_slots(self):
        # frequency is informational: a weekly medicine is still due every day
        weekly = _med("w", ["08:00"], frequency="weekly")
        self.assertEqual(len(eng.today_schedule([weekly], _at("07:00"))), 1)
        self.assertEqual(eng.day_completion([weekly], DAY), 0)


class TestTrailingAdherence(unittest.TestCase):
    def test_empty_catalog_gives_zero_entries(self):
        series = eng.trailing_adherence([], DAY, 7)
        self.assertEqual(len(series), 7)
        self.assertTrue(all(s.percentage == 0 for s in series))
        self.assertEqual(eng.overall_adherence(series), 0)

    def test_oldest_to_newest(self):
        med = _med("a", ["08:00"])
        med = eng.mark_taken(med, "08:00", _at("09:00", DAY - timedelta(days=1)))
        series = eng.trailing_adherence([med], _at("10:00"), 3)
        self.assertEqual([s.label for s in series], ["17/10", "18/10", "19/10"])
        self.assertEqual([s.percentage for s in series], [0, 100, 0])
        self.assertEqual(series[-1].day, date(2026, 10, 19))
        self.assertEqual(eng.overall_adherence(series), 33)

    def test_zero_window(self):
        self.assertEqual(eng.trailing_adherence([_med("a", ["08:00"])], DAY, 0), [])
        self.assertEqual(eng.overall_adherence([]), 0)


class TestTypeDistribution(unittest.TestCase):
    def test_first_seen_order(self):
        meds = [_med("1", ["08:00"], "vitamin"), _med("2", ["08:00"], "vitamin"),
                _med("3", ["08:00"], "supplement")]
        dist = eng.type_distribution(meds)
        self.assertEqual(dist, {"vitamin": 2, "supplement": 1})
        self.assertEqual(list(dist), ["vitamin", "supplement"])

    def test_empty(self):
        self.assertEqual(eng.type_distribution([]), {})


class TestStreak(unittest.TestCase):
    def _taken_on(self, med, *days_back):
        for d in days_back:
            med = eng.mark_taken(med, "08:00", _at("09:00", DAY - timedelta(days=d)))
        return med

    def test_unfinished_today_does_not_break(self):
        med = self._taken_on(_med("a", ["08:00"]), 1, 2)
        self.assertEqual(eng.adherence_streak([med], _at("07:00")), 2)

    def test_today_counts_when_complete(self):
        med = self._taken_on(_med("a", ["08:00"]), 0, 1, 2)
        self.assertEqual(eng.adherence_streak([med], _at("10:00")), 3)

    def test_gap_stops_streak(self):
        med = self._taken_on(_med("a", ["08:00"]), 0, 2, 3)
        self.assertEqual(eng.adherence_streak([med], _at("10:00")), 1)

    def test_no_doses(self):
        self.assertEqual(eng.adherence_streak([], DAY), 0)

    def test_one_missed_dose_breaks_even_when_rounded_to_100(self):
        times = [f"{i // 60:02d}:{i % 60:02d}" for i in range(200)]
        med = _med("a", times)
        yesterday = DAY - timedelta(days=1)
        for hm in times[:199]:
            med = eng.mark_taken(med, hm, yesterday)
        self.assertEqual(eng.day_completion([med], yesterday), 100)  # 99.5
        self.assertEqual(eng.adherence_streak([med], _at("00:00")), 0)

        med = eng.mark_taken(med, times[199], yesterday)
        self.assertEqual(eng.adherence_streak([med], _at("00:00")), 1)


class TestTodaySchedule(unittest.TestCase):
    def test_catalog_times_order_and_status(self):
        a = eng.mark_taken(_med("a", ["08:00", "20:00"]), "08:00", _at("08:05"))
        b = _med("b", ["12:30"])
        got = eng.today_schedule([a, b], _at("12:00"))
        self.assertEqual([(d.medicine.id, d.time, d.status) for d in got], [
            ("a", "08:00", DoseStatus.TAKEN),
            ("a", "20:00", DoseStatus.UPCOMING),
            ("b", "12:30", DoseStatus.DUE_SOON),
        ])
        self.assertEqual(got[2].scheduled, _at("12:30"))

    def test_repeated_time_is_two_slots_sharing_one_taken_key(self):
        # each entry is its own slot, but both map to the same (day, time)
        # key, so one confirmation covers both
        med = _med("a", ["08:00", "08:00"])
        self.assertEqual(len(eng.today_schedule([med], _at("07:30"))), 2)
        self.assertEqual(eng.daily_dose_count([med]), 2)
        self.assertEqual(eng.day_completion([med], DAY), 0)

        med = eng.mark_taken(med, "08:00", _at("08:05"))
        self.assertEqual(med.taken, {"2026-10-19 08:00": True})
        self.assertEqual([d.status for d in eng.today_schedule([med], _at("09:00"))],
                         [DoseStatus.TAKEN, DoseStatus.TAKEN])
        self.assertEqual(eng.day_completion([med], DAY), 100)


class TestRecords(unittest.TestCase):
    def test_name_and_dosage_required(self):
        for name, dosage in (("", "1"), ("Omega 3", "  "), (None, None)):
            with self.assertRaises(ValidationError) as cm:
                new_medicine(name, dosage, "supplement", ["08:00"])
            self.assertEqual(cm.exception.message_key, "enterNameDosage")

    def test_times_are_validated_and_normalised(self):
        med = new_medicine(" Vitamin D ", "1 tablet", "vitamin", ["8:05", "20:00", "20:00"])
        self.assertEqual(med.name, "Vitamin D")
        self.assertEqual(med.times, ["08:05", "20:00", "20:00"])
        self.assertEqual(med.taken, {})
        with self.assertRaises(ValidationError):
            new_medicine("x", "y", "other", ["24:00"])
        with self.assertRaises(ValidationError):
            new_medicine("x", "y", "other", [])
        with self.assertRaises(ValidationError):
            parse_hm("noon")

    def test_unknown_frequency_rejected(self):
        with self.assertRaises(ValidationError):
            new_medicine("x", "y", "other", ["08:00"], frequency="hourly")

    def test_medicine_dict_roundtrip_keeps_taken(self):
        med = eng.mark_taken(new_medicine("x", "y", "insulin", ["08:00"]), "08:00", _at("08:00"))
        self.assertEqual(Medicine.from_dict(med.to_dict()), med)

    def test_measurements(self):
        bp = new_measurement("blood-pressure", systolic="120", diastolic=" 80", now=_at("08:00"))
        self.assertEqual(bp.display_value, "120/80")
        g = new_measurement("glucose", value="5,5", note=" fasting ", now=_at("07:30"))
        self.assertEqual(g.value, 5.5)
        self.assertEqual(g.note, "fasting")
        self.assertEqual(Measurement.from_dict(g.to_dict()), g)
        for kwargs in ({"kind": "weight", "value": "abc"},
                       {"kind": "weight", "value": "-3"},
                       {"kind": "blood-pressure", "systolic": "120"},
                       {"kind": "height", "value": "180"}):
            with self.assertRaises(ValidationError):
                new_measurement(**kwargs)


class TestTrends(unittest.TestCase):
    def setUp(self):
        self.log = [
            new_measurement("blood-pressure", systolic=120, diastolic=80, now=_at("08:00") - timedelta(days=2)),
            new_measurement("blood-pressure", systolic=117, diastolic=77, now=_at("08:00") - timedelta(days=1)),
            new_measurement("glucose", value="95", now=_at("07:30")),
            new_measurement("glucose", value="100", now=_at("07:30") - timedelta(days=1)),
        ]

    def test_latest_and_average(self):
        self.assertEqual(trends.latest(self.log, "blood-pressure").systolic, 117)
        self.assertEqual(trends.average(self.log, "blood-pressure"), "119/79")  # 118.5 / 78.5
        self.assertEqual(trends.average(self.log, "glucose"), "97.5")
        self.assertIsNone(trends.latest(self.log, "weight"))
        self.assertIsNone(trends.average(self.log, "weight"))

    def test_chart_series_oldest_first_limited(self):
        series = trends.chart_series(self.log, "blood-pressure", limit=1)
        self.assertEqual(series, [{"date": "18/10", "systolic": 117, "diastolic": 77}])
        self.assertEqual([p["value"] for p in trends.chart_series(self.log, "glucose")], [100.0, 95.0])

    def test_relative_day(self):
        now = _at("12:00")
        self.assertEqual(trends.relative_day(_at("01:00"), now), "today")
        self.assertEqual(trends.relative_day(now - timedelta(days=1), now), "yesterday")
        self.assertEqual(trends.relative_day(datetime(2026, 1, 2, 9, 0), now), "2/1/2026")


class TestFamily(unittest.TestCase):
    def test_default_member(self):
        members = family.ensure_default([])
        self.assertEqual(len(members), 1)
        self.assertTrue(members[0].is_active)
        self.assertEqual(family.ensure_default(members), members)

    def test_add_and_switch(self):
        members = family.ensure_default([])
        members = family.add_member(members, "Sara", "daughter")
        members = family.add_member(members, "Omar", "son")
        self.assertEqual([m.color for m in members], ["#3b82f6", "#8b5cf6", "#ec4899"])
        self.assertFalse(members[1].is_active)

        switched = family.switch_member(members, members[2].id)
        self.assertEqual([m.is_active for m in switched], [False, False, True])
        self.assertEqual(family.active_member(switched).name, "Omar")

    def test_invalid_input(self):
        with self.assertRaises(ValidationError):
            family.add_member([], "  ", "self")
        with self.assertRaises(ValidationError):
            family.switch_member(family.ensure_default([]), "missing")


class _StoreTestCase(unittest.TestCase):
    def setUp(self):
        self._td = tempfile.TemporaryDirectory()
        self.paths = Paths(Path(self._td.name))
        self.key = AESGCM.generate_key(bit_length=256)
        self.store = BucketStore(self.key, self.paths)

    def tearDown(self):
        self._td.cleanup()


class TestBucketStore(_StoreTestCase):
    def test_crypto_roundtrip(self):
        pt = b"dose log" * 100
        self.assertEqual(aes_decrypt(aes_encrypt(pt, self.key), self.key), pt)

    def test_key_is_created_once(self):
        key_path = self.paths.key_path
        k1 = get_or_create_key(key_path)
        k2 = get_or_create_key(key_path)
        self.assertEqual(len(k1), 32)
        self.assertEqual(k1, k2)

    def test_missing_state_falls_back_to_defaults(self):
        self.assertEqual(self.store.load_medicines(), [])
        self.assertEqual(self.store.load_streak(), 0)
        self.assertEqual(self.store.load_preferences(), {})
        self.assertEqual(self.store.read_bucket("nope", "dflt"), "dflt")

    def test_snapshot_roundtrip_and_encrypted_at_rest(self):
        med = eng.mark_taken(new_medicine("Omega 3", "1 capsule", "supplement", ["08:00", "20:00"]),
                             "08:00", _at("08:10"))
        self.store.save_medicines([med])
        self.store.save_streak(4)
        self.assertEqual(self.store.load_medicines(), [med])
        self.assertEqual(self.store.load_streak(), 4)
        self.assertNotIn(b"Omega", self.paths.db_path.read_bytes())

    def test_measurement_log_is_append_only(self):
        m1 = new_measurement("weight", value="75", now=_at("07:00"))
        m2 = new_measurement("weight", value="74.5", now=_at("07:00", DAY + timedelta(days=1)))
        self.store.append_measurement(m1)
        log = self.store.append_measurement(m2)
        self.assertEqual(log, [m1, m2])
        self.assertEqual(self.store.load_measurements(), [m1, m2])

    def test_family_roundtrip(self):
        members = family.add_member(family.ensure_default([]), "Sara", "daughter")
        self.store.save_family(members)
        self.assertEqual(self.store.load_family(), members)
        self.assertIsInstance(self.store.load_family()[0], FamilyMember)

    def test_wrong_key_reads_as_absent(self):
        self.store.save_streak(9)
        other = BucketStore(AESGCM.generate_key(bit_length=256), self.paths)
        self.assertEqual(other.load_streak(), 0)
        self.assertEqual(other.load_medicines(), [])

    def test_corrupt_file_reads_as_absent(self):
        self.store.save_streak(9)
        self.paths.db_path.write_bytes(b"garbage")
        self.assertEqual(self.store.load_streak(), 0)

    def _corrupt_copies(self):
        return sorted(self.paths.base_dir.glob(self.paths.db_path.name + ".corrupt.*"))

    def test_write_after_corruption_starts_a_fresh_store(self):
        self.store.save_streak(9)
        self.paths.db_path.write_bytes(b"garbage" * 10)

        med = _med("a", ["08:00"])
        self.store.save_medicines([med])

        self.assertEqual(self.store.load_medicines(), [med])
        self.assertEqual(self.store.load_streak(), 0)
        copies = self._corrupt_copies()
        self.assertEqual(len(copies), 1)
        self.assertEqual(copies[0].read_bytes(), b"garbage" * 10)

    def test_write_with_new_key_sets_old_store_aside(self):
        self.store.save_streak(9)
        old_bytes = self.paths.db_path.read_bytes()

        other = BucketStore(AESGCM.generate_key(bit_length=256), self.paths)
        other.save_streak(3)
        other.save_family(family.ensure_default([]))

        self.assertEqual(other.load_streak(), 3)
        self.assertEqual(len(other.load_family()), 1)
        self.assertEqual([p.read_bytes() for p in self._corrupt_copies()], [old_bytes])
        self.assertEqual(self.store.load_streak(), 0)

    def test_healthy_store_is_not_set_aside(self):
        self.store.save_streak(1)
        self.store.save_streak(2)
        self.assertEqual(self.store.load_streak(), 2)
        self.assertEqual(self._corrupt_copies(), [])

    def test_take_dose_saves_then_returns_catalog(self):
        catalog = [_med("a", ["08:00"]), _med("b", ["09:00"])]
        self.store.save_medicines(catalog)

        updated = self.store.take_dose(catalog, "a", "08:00", _at("08:10"))
        self.assertTrue(eng.is_taken(updated[0], DAY, "08:00"))
        self.assertEqual(updated[1], catalog[1])
        self.assertEqual(self.store.load_medicines(), updated)
        self.assertEqual(catalog[0].taken, {})

    def test_failed_save_leaves_catalog_untouched(self):
        class FailingStore(BucketStore):
            def write_bucket(self, name, value):
                raise OSError("disk full")

        store = FailingStore(self.key, self.paths)
        catalog = [_med("a", ["08:00"])]
        with self.assertRaises(OSError):
            store.take_dose(catalog, "a", "08:00", _at("08:10"))
        self.assertEqual(catalog[0].taken, {})
        with self.assertRaises(OSError):
            store.add_medicine(_med("b", ["09:00"]))
        self.assertEqual(store.load_medicines(), [])

    def test_add_medicine_appends_to_stored_catalog(self):
        self.store.save_medicines([_med("a", ["08:00"])])
        catalog = self.store.add_medicine(_med("b", ["09:00"]))
        self.assertEqual([m.id for m in catalog], ["a", "b"])
        self.assertEqual(self.store.load_medicines(), catalog)

    def test_malformed_records_are_skipped(self):
        good = _med("a", ["08:00"]).to_dict()
        self.store.write_bucket(BUCKET_MEDICINES, [good, {"name": "no id"}, {"id": "x", "name": "y", "times": "08:00"}])
        meds = self.store.load_medicines()
        self.assertEqual([m.id for m in meds], ["a"])

    def test_non_list_bucket_is_ignored(self):
        self.store.write_bucket(BUCKET_MEDICINES, {"not": "a list"})
        self.assertEqual(self.store.load_medicines(), [])


class _MemoryPrefs:
    def __init__(self, prefs=None):
        self.prefs = dict(prefs or {})
        self.saves = 0

    def load_preferences(self):
        return dict(self.prefs)

    def save_preferences(self, prefs):
        self.prefs = dict(prefs)
        self.saves += 1


class TestSettings(_StoreTestCase):
    def test_defaults(self):
        s = SettingsStore(_MemoryPrefs()).current
        self.assertEqual(s, Settings(theme="light", language="ar", critical_notifications=True))
        self.assertEqual(s.text_direction, "rtl")

    def test_invalid_prefs_fall_back(self):
        s = SettingsStore(_MemoryPrefs({"theme": "pink", "language": "fr",
                                        "critical_notifications": "yes"})).current
        self.assertEqual(s, Settings())

    def test_changes_persist_across_stores(self):
        first = SettingsStore(self.store)
        first.toggle_theme()
        first.set_language("en")
        first.toggle_critical_notifications()

        second = SettingsStore(self.store).current
        self.assertEqual(second, Settings(theme="dark", language="en", critical_notifications=False))
        self.assertEqual(second.text_direction, "ltr")

    def test_subscribers_notified_after_change(self):
        prefs = _MemoryPrefs()
        store = SettingsStore(prefs)
        seen = []
        unsubscribe = store.subscribe(seen.append)

        store.set_language("en")
        store.set_language("en")
        self.assertEqual([s.language for s in seen], ["en"])
        self.assertEqual(prefs.saves, 1)

        unsubscribe()
        store.toggle_theme()
        self.assertEqual(len(seen), 1)
        self.assertEqual(prefs.prefs["theme"], "dark")

    def test_unknown_language(self):
        with self.assertRaises(ValueError):
            SettingsStore(_MemoryPrefs()).set_language("fr")


class TestOverdueMonitor(unittest.TestCase):
    def setUp(self):
        self.meds = [_med("a", ["08:00"]), _med("b", ["08:20", "21:00"])]
        self.sent = []
        self.enabled = True
        self.monitor = OverdueMonitor(
            load_medicines=lambda: self.meds,
            notify=lambda title, text: self.sent.append((title, text)),
            notifications_enabled=lambda: self.enabled,
        )

    def test_notifies_each_slot_once_per_day(self):
        self.assertEqual(self.monitor.tick(_at("08:29")), [])
        self.assertEqual(len(self.monitor.tick(_at("08:30"))), 1)
        self.assertEqual(len(self.sent), 1)
        self.assertIn("med-a", self.sent[0][1])
        self.assertIn("30 minutes late", self.sent[0][1])

        still = self.monitor.tick(_at("08:55"))
        self.assertEqual([o.medicine.id for o in still], ["a", "b"])
        self.assertEqual(len(self.sent), 2)

        self.monitor.tick(_at("09:30"))
        self.assertEqual(len(self.sent), 2)

        self.monitor.tick(_at("08:30", DAY + timedelta(days=1)))
        self.assertEqual(len(self.sent), 3)

    def test_repeated_time_notifies_once(self):
        self.meds = [_med("a", ["08:00", "08:00"])]
        overdue = self.monitor.tick(_at("08:40"))
        self.assertEqual([(o.time, o.minutes_late) for o in overdue], [("08:00", 40), ("08:00", 40)])
        self.assertEqual(len(self.sent), 1)

    def test_taken_dose_stops_alerting(self):
        self.meds[0] = eng.mark_taken(self.meds[0], "08:00", _at("08:40"))
        self.assertEqual(self.monitor.tick(_at("08:45")), [])
        self.assertEqual(self.sent, [])

    def test_disabled_notifications(self):
        self.enabled = False
        self.assertEqual(self.monitor.tick(_at("12:00")), [])
        self.assertEqual(self.sent, [])

    def test_loader_failure_yields_nothing(self):
        def boom():
            raise OSError("storage gone")
        monitor = OverdueMonitor(load_medicines=boom, notify=lambda *_: self.fail("notified"))
        self.assertEqual(monitor.tick(_at("12:00")), [])


class TestLogging(unittest.TestCase):
    def test_ring_is_bounded(self):
        ring = RingLog(max_lines=3)
        for i in range(5):
            ring.add(f"line {i}\n")
        ring.add("")
        self.assertEqual(ring.lines(), ["line 2", "line 3", "line 4"])
        ring.clear()
        self.assertEqual(ring.text(), "")

    def test_handler_writes_ring_and_file(self):
        with tempfile.TemporaryDirectory() as td:
            log_path = Path(td) / "logs" / "app.log"
            ring = RingLog()
            test_logger = logging.getLogger("dosewise_handler_test")
            test_logger.propagate = False
            test_logger.setLevel(logging.INFO)
            handler = FileAndRingHandler(ring, log_path)
            test_logger.addHandler(handler)
            try:
                test_logger.info("dose taken: med_id=a time=08:00")
            finally:
                test_logger.removeHandler(handler)
            self.assertIn("INFO dose taken", ring.text())
            self.assertIn("dose taken", log_path.read_text(encoding="utf-8"))

    def test_setup_is_idempotent(self):
        setup_logging()
        setup_logging()
        count = sum(isinstance(h, FileAndRingHandler) for h in logger.handlers)
        self.assertEqual(count, 1)


class TestStrings(unittest.TestCase):
    def test_tables_have_same_keys(self):
        self.assertEqual(set(TRANSLATIONS["ar"]), set(TRANSLATIONS["en"]))

    def test_lookup_fallbacks(self):
        self.assertEqual(tr("fr", "home"), "Home")
        self.assertEqual(tr("en", "noSuchKey"), "noSuchKey")
        self.assertEqual(type_label("en", "birth-control"), "Birth control")
        self.assertEqual(type_label("en", "herbal tea"), "herbal tea")

    def test_lateness(self):
        self.assertEqual(format_lateness("en", 45), "45 minutes late")
        self.assertEqual(format_lateness("en", 125), "2 hours late")

    def test_long_date(self):
        self.assertEqual(format_long_date("en", date(2026, 10, 19)), "Monday, October 19, 2026")
        self.assertTrue(format_long_date("ar", date(2026, 10, 19)).startswith("الاثنين"))


if __name__ == "__main__":
    unittest.main(verbosity=2)
