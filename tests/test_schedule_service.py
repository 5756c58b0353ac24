#!/usr/bin/env python3
"""
Unit tests for the Immunization Schedule Service
"""

import unittest
import json
import pytest
import yaml
import tempfile
import logging
from datetime import date, datetime
from pathlib import Path
import sys

# Add project root to path
sys.path.append(str(Path(__file__).parent.parent))

from services.schedule_service import ImmunizationScheduleService, load_engine_config
from immunization_engine import AdministrationRecord, ChildProfile, EngineConfig, RecordStatus

class TestImmunizationScheduleService(unittest.TestCase):
    """Test cases for plan generation against the bundled catalog"""

    @classmethod
    def setUpClass(cls):
        """Set up test fixtures"""
        cls.service = ImmunizationScheduleService()

        # Load test cases
        fixtures_path = Path(__file__).parent / "fixtures" / "schedule" / "sample_cases.json"
        with open(fixtures_path, 'r') as f:
            cls.test_data = json.load(f)

    def _run_case(self, test_case):
        profile = ChildProfile(**test_case['profile'])
        records = [AdministrationRecord(**r) for r in test_case['records']]
        now = datetime.fromisoformat(test_case['now'])
        return self.service.generate_schedule(profile, records, now=now)

    def test_schedule_scenarios(self):
        """Test generated plans for sample children"""
        for test_case in self.test_data['schedule_tests']:
            with self.subTest(scenario=test_case['scenario']):
                result = self._run_case(test_case)
                expected = test_case['expected']

                if 'error_code' in expected:
                    self.assertIn('error', result)
                    self.assertEqual(result['error']['error_code'], expected['error_code'])
                    continue

                self.assertNotIn('error', result)
                plan_ids = [entry['dose_id'] for entry in result['plan']]

                self.assertEqual(result['age_in_weeks'], expected['age_in_weeks'])
                if 'plan' in expected:
                    self.assertEqual(plan_ids, expected['plan'])
                if 'catch_up' in expected:
                    self.assertEqual(result['catch_up'], expected['catch_up'])
                if 'next_action' in expected:
                    self.assertEqual(result['summary']['next_action'], expected['next_action'])
                if 'first_weeks_delta' in expected:
                    self.assertEqual(result['plan'][0]['weeks_delta'], expected['first_weeks_delta'])
                if 'blocked' in expected:
                    blocked = [e['dose_id'] for e in result['plan'] if e['blocked_by_series']]
                    self.assertEqual(blocked, expected['blocked'])
                if 'removed_doses' in expected:
                    self.assertEqual(result['removed_doses'], expected['removed_doses'])
                for dose_id in expected.get('absent_from_plan', []):
                    self.assertNotIn(dose_id, plan_ids)

    def test_response_structure(self):
        """Test JSON-ready response fields"""
        result = self._run_case(self.test_data['schedule_tests'][1])

        self.assertEqual(result['patient']['child_id'], 'c-002')
        self.assertEqual(result['patient']['birth_date'], '2024-08-15')
        self.assertEqual(result['catalog_version'], self.service.catalog.version)

        entry = result['plan'][0]
        self.assertEqual(entry['status'], 'overdue')
        self.assertEqual(entry['urgency'], 'critical')
        self.assertEqual(entry['reminder_priority'], 'urgent')

        summary = result['summary']
        self.assertEqual(summary['total_actionable'], len(result['plan']))
        self.assertEqual(summary['overdue'] + summary['due_or_upcoming'], summary['total_actionable'])
        self.assertEqual(summary['blocked_by_series'], 5)

        json.dumps(result)

    def test_records_for_personalized_away_doses_ignored(self):
        """Records for removed doses must not fail the plan"""
        profile = ChildProfile(birth_date=date(2024, 1, 10), risk_factors={'immunocompromised'})
        records = [AdministrationRecord(dose_id='mmr-1', status='scheduled',
                                        scheduled_date=date(2025, 1, 10))]

        result = self.service.generate_schedule(profile, records, now=datetime(2025, 1, 15))

        self.assertNotIn('error', result)
        self.assertIn('mmr-1', result['removed_doses'])

    def test_birth_date_after_now(self):
        profile = ChildProfile(birth_date=date(2025, 6, 1))
        result = self.service.generate_schedule(profile, now=datetime(2025, 1, 1))

        self.assertEqual(result['error']['error_code'], 'SCHED_001')
        self.assertEqual(result['error']['details']['field'], 'reference')

    def test_record_transition(self):
        """Test transitions validated against the active catalog"""
        record = AdministrationRecord(dose_id='dtap-2', status='scheduled',
                                      scheduled_date=date(2024, 12, 5))

        skipped = self.service.record_transition(record, 'skipped', now=datetime(2025, 1, 18))
        self.assertTrue(skipped.ok)
        self.assertEqual(skipped.warnings[0].code, 'MANDATORY_DOSE_NOT_GIVEN')

        given = self.service.record_transition(
            record, RecordStatus.COMPLETED,
            {'completed_date': date(2024, 12, 6), 'location': 'Riverside Clinic'},
            now=datetime(2025, 1, 18)
        )
        self.assertTrue(given.ok)
        self.assertEqual(given.record.status, RecordStatus.COMPLETED)

        rejected = self.service.record_transition(given.record, 'delayed', now=datetime(2025, 1, 18))
        self.assertFalse(rejected.ok)
        self.assertEqual(rejected.error.to_dict()['error_type'], 'InvalidTransitionError')

class TestServiceConfiguration:
    """Test configuration loading from a custom directory"""

    def setup_method(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.config_dir = Path(self.temp_dir.name)

        self.catalog_data = {
            'version': 'clinic-1',
            'doses': [
                {
                    'id': 'dtap-1', 'series_key': 'dtap', 'dose_number': 1,
                    'total_doses_in_series': 2, 'target_age_weeks': 8, 'max_delay_weeks': 2,
                    'category': 'mandatory', 'urgency': 'critical',
                },
                {
                    'id': 'dtap-2', 'series_key': 'dtap', 'dose_number': 2,
                    'total_doses_in_series': 2, 'target_age_weeks': 16, 'max_delay_weeks': 2,
                    'minimum_interval_weeks': 4, 'category': 'mandatory', 'urgency': 'critical',
                },
            ]
        }
        self.settings_data = {
            'catalog_file': 'clinic_catalog.yaml',
            'engine': {
                'lookahead_weeks': 0,
                'completed_required_fields': ['completed_date', 'location', 'batch_number'],
            }
        }

        with open(self.config_dir / 'clinic_catalog.yaml', 'w') as f:
            yaml.dump(self.catalog_data, f)
        with open(self.config_dir / 'immunization.yaml', 'w') as f:
            yaml.dump(self.settings_data, f)

    def teardown_method(self):
        self.temp_dir.cleanup()

    def test_custom_configuration_loaded(self):
        service = ImmunizationScheduleService(config_dir=self.config_dir)

        assert service.catalog.version == 'clinic-1'
        assert service.config.lookahead_weeks == 0
        assert len(service.catalog) == 2

    def test_lookahead_from_config(self):
        service = ImmunizationScheduleService(config_dir=self.config_dir)
        profile = ChildProfile(birth_date=date(2024, 8, 15))

        result = service.generate_schedule(profile, now=datetime(2024, 10, 24))

        assert result['age_in_weeks'] == 10
        assert [e['dose_id'] for e in result['plan']] == ['dtap-1']

    def test_required_fields_from_config(self):
        service = ImmunizationScheduleService(config_dir=self.config_dir)
        record = AdministrationRecord(dose_id='dtap-1', status='scheduled',
                                      scheduled_date=date(2024, 10, 10))

        result = service.record_transition(
            record, 'completed', {'completed_date': date(2024, 10, 10), 'location': 'Clinic'},
            now=datetime(2024, 10, 24)
        )

        assert not result.ok
        assert result.error.field == 'batch_number'

    def test_missing_settings_use_defaults(self, caplog):
        (self.config_dir / 'immunization.yaml').unlink()
        (self.config_dir / 'clinic_catalog.yaml').rename(self.config_dir / 'vaccine_catalog.yaml')

        with caplog.at_level(logging.WARNING):
            service = ImmunizationScheduleService(config_dir=self.config_dir)

        assert service.config == EngineConfig()
        assert 'not found' in caplog.text

    def test_missing_catalog_raises(self):
        (self.config_dir / 'clinic_catalog.yaml').unlink()

        with pytest.raises(FileNotFoundError):
            ImmunizationScheduleService(config_dir=self.config_dir)

    def test_settings_file_read_once(self, monkeypatch):
        loaded = []
        safe_load = yaml.safe_load

        def counting_safe_load(stream):
            loaded.append(Path(stream.name).name)
            return safe_load(stream)

        monkeypatch.setattr(yaml, 'safe_load', counting_safe_load)
        ImmunizationScheduleService(config_dir=self.config_dir)

        assert loaded == ['immunization.yaml', 'clinic_catalog.yaml']

    def test_load_engine_config(self):
        config = load_engine_config(self.config_dir / 'immunization.yaml')
        assert config.lookahead_weeks == 0
        assert config.premature_offset_weeks == 2
