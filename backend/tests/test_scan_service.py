"""
Tests unitaires pour la validation des scans (géorepérage).
Couverture : résolution du code, verdict distance/rayon, enregistrement
systématique (même hors rayon), historique et statistiques.
"""

import math
import uuid
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest
from pydantic import ValidationError

from patroltrack.models.checkpoint import Checkpoint
from patroltrack.models.scan import Scan
from patroltrack.schemas.scan import ScanFilters, ScanSubmit
from patroltrack.services.geo import EARTH_RADIUS_M, GeoPoint, distance_m
from patroltrack.services.scan_service import (
    REASON_INACTIVE,
    REASON_NOT_FOUND,
    CheckpointNotResolved,
    QrPayloadKey,
    ShortCodeKey,
    evaluate_scan,
    get_scan_stats,
    get_scans,
    lookup_keys,
    resolve_checkpoint,
    submit_scan,
    validate_scan,
)

CP_LAT, CP_LNG = 41.2995, 69.2401


# ----------------------------------------------------------------
# Helpers
# ----------------------------------------------------------------

def make_checkpoint(radius_meters=50, is_active=True, latitude=CP_LAT, longitude=CP_LNG):
    cp = MagicMock(spec=Checkpoint)
    cp.id = uuid.uuid4()
    cp.name = "KPP Entrée principale"
    cp.latitude = latitude
    cp.longitude = longitude
    cp.radius_meters = radius_meters
    cp.checkpoint_type = "KPP"
    cp.short_code = "4821"
    cp.qr_code_data = "CP-1718000000000-k3j9x0a2b"
    cp.is_active = is_active
    return cp


def offset_north(meters):
    """Position à `meters` mètres plein nord du point de contrôle."""
    return GeoPoint(CP_LAT + math.degrees(meters / EARTH_RADIUS_M), CP_LNG)


def make_db(*checkpoints):
    """DB mock : chaque appel à execute().scalar() renvoie le checkpoint suivant (ou None)."""
    db = MagicMock()
    results = []
    for cp in checkpoints:
        result = MagicMock()
        result.scalar.return_value = cp
        results.append(result)
    db.execute.side_effect = results
    return db


def make_submit(code="4821", latitude=CP_LAT, longitude=CP_LNG, note=None):
    return ScanSubmit(code=code, latitude=latitude, longitude=longitude, note=note)


# ----------------------------------------------------------------
# lookup_keys
# ----------------------------------------------------------------

class TestLookupKeys:
    def test_code_numerique_code_court_puis_qr(self):
        assert lookup_keys("4821") == [ShortCodeKey("4821"), QrPayloadKey("4821")]

    def test_contenu_qr_seulement(self):
        assert lookup_keys("CP-1718000000000-k3j9x0a2b") == [QrPayloadKey("CP-1718000000000-k3j9x0a2b")]

    def test_espaces_retires(self):
        assert lookup_keys(" 4821 ")[0] == ShortCodeKey("4821")


# ----------------------------------------------------------------
# resolve_checkpoint
# ----------------------------------------------------------------

class TestResolveCheckpoint:
    def test_resolu_par_code_court(self):
        cp = make_checkpoint()
        db = make_db(cp)

        assert resolve_checkpoint(db, "4821") is cp
        assert db.execute.call_count == 1

    def test_resolu_par_qr_apres_echec_code_court(self):
        cp = make_checkpoint()
        db = make_db(None, cp)

        assert resolve_checkpoint(db, "4821") is cp
        assert db.execute.call_count == 2

    def test_resolu_par_contenu_qr(self):
        cp = make_checkpoint()
        db = make_db(cp)

        assert resolve_checkpoint(db, "CP-1718000000000-k3j9x0a2b") is cp

    def test_code_inconnu(self):
        db = make_db(None, None)

        with pytest.raises(CheckpointNotResolved) as exc:
            resolve_checkpoint(db, "9999")

        assert exc.value.reason == REASON_NOT_FOUND

    def test_point_inactif_jamais_resolu(self):
        db = make_db(make_checkpoint(is_active=False), None)

        with pytest.raises(CheckpointNotResolved) as exc:
            resolve_checkpoint(db, "4821")

        assert exc.value.reason == REASON_INACTIVE

    def test_message_identique_inactif_ou_inconnu(self):
        with pytest.raises(CheckpointNotResolved) as inactive:
            resolve_checkpoint(make_db(make_checkpoint(is_active=False), None), "4821")
        with pytest.raises(CheckpointNotResolved) as unknown:
            resolve_checkpoint(make_db(None, None), "4821")

        assert str(inactive.value) == str(unknown.value)

    def test_est_une_value_error(self):
        with pytest.raises(ValueError, match="introuvable"):
            resolve_checkpoint(make_db(None), "CP-inconnu")


# ----------------------------------------------------------------
# evaluate_scan / validate_scan
# ----------------------------------------------------------------

class TestEvaluateScan:
    def test_meme_position_valide(self):
        verdict = evaluate_scan(make_checkpoint(), GeoPoint(CP_LAT, CP_LNG))

        assert verdict.is_valid is True
        assert verdict.distance_meters == pytest.approx(0.0, abs=1e-6)

    def test_a_500_metres_invalide(self):
        position = offset_north(500)
        verdict = evaluate_scan(make_checkpoint(radius_meters=50), position)

        assert verdict.distance_meters == pytest.approx(500.0, abs=0.01)
        assert verdict.is_valid is False

    def test_exactement_sur_le_rayon_valide(self):
        """distance == rayon → valide (borne incluse)."""
        position = offset_north(50)
        cp = make_checkpoint()
        cp.radius_meters = distance_m(position, GeoPoint(CP_LAT, CP_LNG))

        verdict = evaluate_scan(cp, position)

        assert verdict.distance_meters == cp.radius_meters
        assert verdict.is_valid is True

    def test_juste_dans_le_rayon(self):
        assert evaluate_scan(make_checkpoint(radius_meters=50), offset_north(49.9)).is_valid is True

    def test_juste_hors_du_rayon(self):
        assert evaluate_scan(make_checkpoint(radius_meters=50), offset_north(50.1)).is_valid is False

    def test_rayon_nul_seule_coincidence_exacte(self):
        cp = make_checkpoint(radius_meters=0)
        assert evaluate_scan(cp, GeoPoint(CP_LAT, CP_LNG)).is_valid is True
        assert evaluate_scan(cp, offset_north(0.5)).is_valid is False

    def test_validate_scan_inactif_quelle_que_soit_la_distance(self):
        db = make_db(make_checkpoint(is_active=False), None)

        with pytest.raises(CheckpointNotResolved):
            validate_scan(db, "4821", GeoPoint(CP_LAT, CP_LNG))


# ----------------------------------------------------------------
# submit_scan
# ----------------------------------------------------------------

class TestSubmitScan:
    def test_scan_valide_enregistre(self):
        cp = make_checkpoint()
        db = make_db(cp)
        reporter_id = uuid.uuid4()

        result = submit_scan(db, reporter_id, make_submit(note="RAS"))

        db.add.assert_called_once()
        db.commit.assert_called_once()
        scan = db.add.call_args[0][0]
        assert isinstance(scan, Scan)
        assert scan.reporter_id == reporter_id
        assert scan.checkpoint_id == cp.id
        assert scan.is_valid is True
        assert scan.note == "RAS"
        assert result.is_valid is True
        assert result.checkpoint.name == cp.name
        assert result.checkpoint.type == "KPP"
        assert result.scan_id == scan.id

    def test_scan_hors_rayon_enregistre_quand_meme(self):
        cp = make_checkpoint(radius_meters=50)
        db = make_db(cp)
        far = offset_north(500)

        result = submit_scan(db, uuid.uuid4(), make_submit(latitude=far.lat, longitude=far.lng))

        db.add.assert_called_once()
        db.commit.assert_called_once()
        scan = db.add.call_args[0][0]
        assert scan.is_valid is False
        assert scan.distance_meters == pytest.approx(500.0, abs=0.01)
        assert result.is_valid is False
        assert result.required_radius == 50
        assert "trop loin" in result.message
        assert "500 m" in result.message

    def test_code_non_resolu_rien_enregistre(self):
        db = make_db(None, None)

        with pytest.raises(CheckpointNotResolved):
            submit_scan(db, uuid.uuid4(), make_submit(code="0000"))

        db.add.assert_not_called()
        db.commit.assert_not_called()

    def test_scanned_at_utc(self):
        db = make_db(make_checkpoint())
        result = submit_scan(db, uuid.uuid4(), make_submit())
        assert result.scanned_at.tzinfo is not None


class TestScanSubmitSchema:
    def test_validite_fournie_par_le_client_refusee(self):
        with pytest.raises(ValidationError):
            ScanSubmit(code="4821", latitude=CP_LAT, longitude=CP_LNG, is_valid=True)

    def test_distance_fournie_par_le_client_refusee(self):
        with pytest.raises(ValidationError):
            ScanSubmit(code="4821", latitude=CP_LAT, longitude=CP_LNG, distance_meters=0)

    def test_latitude_hors_plage(self):
        with pytest.raises(ValidationError):
            ScanSubmit(code="4821", latitude=91, longitude=CP_LNG)

    def test_code_vide(self):
        with pytest.raises(ValidationError):
            ScanSubmit(code="   ", latitude=CP_LAT, longitude=CP_LNG)


# ----------------------------------------------------------------
# Historique et statistiques
# ----------------------------------------------------------------

def test_get_scans_construit_les_lignes():
    cp = make_checkpoint()
    scan = MagicMock(spec=Scan)
    scan.id = uuid.uuid4()
    scan.reporter_id = uuid.uuid4()
    scan.latitude = CP_LAT
    scan.longitude = CP_LNG
    scan.distance_meters = 12.5
    scan.is_valid = True
    scan.note = None
    scan.scanned_at = datetime(2026, 6, 1, 23, 15, tzinfo=timezone.utc)

    db = MagicMock()
    db.execute.return_value.all.return_value = [(scan, cp, "Ivanov Ivan")]

    records = get_scans(db, ScanFilters(is_valid=True, limit=10))

    assert len(records) == 1
    assert records[0].reporter_name == "Ivanov Ivan"
    assert records[0].checkpoint_name == cp.name
    assert records[0].distance_meters == 12.5


def test_get_scans_vide():
    db = MagicMock()
    db.execute.return_value.all.return_value = []
    assert get_scans(db, ScanFilters()) == []


def test_get_scan_stats():
    reporter_id = uuid.uuid4()
    last_scan = datetime(2026, 6, 1, 23, 15, tzinfo=timezone.utc)

    totals_result = MagicMock()
    totals_result.one.return_value = (5, 2, 3, 21.75, 4, 1)
    reporters_result = MagicMock()
    reporters_result.all.return_value = [(reporter_id, "Petrov Petr", "PATROL", 5, last_scan)]

    db = MagicMock()
    db.execute.side_effect = [totals_result, reporters_result]

    stats = get_scan_stats(db)

    assert stats.stats.total_scans == 5
    assert stats.stats.valid_scans == 4
    assert stats.stats.invalid_scans == 1
    assert stats.stats.avg_distance == 21.75
    assert stats.reporter_stats[0].scan_count == 5
    assert stats.reporter_stats[0].last_scan == last_scan


def test_get_scan_stats_base_vide():
    totals_result = MagicMock()
    totals_result.one.return_value = (0, 0, 0, None, 0, 0)
    reporters_result = MagicMock()
    reporters_result.all.return_value = []

    db = MagicMock()
    db.execute.side_effect = [totals_result, reporters_result]

    stats = get_scan_stats(db)

    assert stats.stats.total_scans == 0
    assert stats.stats.avg_distance is None
    assert stats.reporter_stats == []
