"""
Tests for the persisted readings endpoints.
"""

import pytest

WINDOW = 'start_date=2024-01-01T00:00:00Z&end_date=2024-01-03T00:00:00Z'


class TestReadingsTimeseries:
    """GET /api/readings/timeseries"""

    def test_pagination(self, client, seeded_readings):
        assert seeded_readings == 144

        response = client.get('/api/readings/timeseries?limit=10&offset=20')
        assert response.status_code == 200

        data = response.json['data']
        assert len(data['data']) == 10
        assert data['total_count'] == 144
        assert data['pagination'] == {'page': 3, 'limit': 10, 'offset': 20, 'total_pages': 15}
        assert data['date_range'] == {'start': None, 'end': None}

        timestamps = [reading['timestamp'] for reading in data['data']]
        assert timestamps == sorted(timestamps)

    def test_limit_is_clamped(self, client, seeded_readings):
        data = client.get('/api/readings/timeseries?limit=5000').json['data']
        assert data['pagination']['limit'] == 1000
        assert len(data['data']) == 144

    @pytest.mark.parametrize('query', [
        'sensor_id=SENSOR_004',
        'equipment_type=Water',
        'floor_number=3',
    ])
    def test_filters(self, client, seeded_readings, query):
        data = client.get(f'/api/readings/timeseries?{query}').json['data']
        assert data['total_count'] == 48
        assert {reading['sensor_id'] for reading in data['data']} == {'SENSOR_004'}
        assert data['data'][0]['unit'] == 'L/min'

    def test_date_window(self, client, seeded_readings):
        data = client.get('/api/readings/timeseries?start_date=2024-01-02T00:00:00Z').json['data']
        assert data['total_count'] == 72
        assert data['data'][0]['timestamp'] == '2024-01-02T00:00:00.000Z'
        assert data['date_range']['start'] == '2024-01-02T00:00:00+00:00'

    def test_invalid_parameters(self, client, db_session):
        response = client.get('/api/readings/timeseries?start_date=soon&equipment_type=Toaster')
        assert response.status_code == 400

        fields = {error['field'] for error in response.json['validation_errors']}
        assert fields == {'start_date', 'equipment_type'}

    def test_empty_database(self, client, db_session):
        data = client.get('/api/readings/timeseries').json['data']
        assert data['data'] == []
        assert data['total_count'] == 0
        assert data['pagination']['total_pages'] == 0


class TestReadingsChart:
    """GET /api/readings/chart"""

    def test_decimates_per_sensor(self, client, seeded_readings):
        response = client.get(f'/api/readings/chart?sensor_ids=SENSOR_001,SENSOR_004&max_points=20&{WINDOW}')
        assert response.status_code == 200

        data = response.json['data']
        assert [s['sensor_id'] for s in data['series']] == ['SENSOR_001', 'SENSOR_004']
        for entry in data['series']:
            assert len(entry['data']) == 10
            assert entry['data'][0]['timestamp'] == '2024-01-01T00:00:00.000Z'
            assert entry['data'][-1]['timestamp'] == '2024-01-02T23:00:00.000Z'

        assert data['series'][1]['equipment_type'] == 'Water'
        assert data['series'][1]['unit'] == 'L/min'
        assert data['metadata']['original_points'] == 96
        assert data['metadata']['total_points'] == 20
        assert data['metadata']['decimated'] is True

    def test_small_share_per_sensor_stays_within_max_points(self, client, seeded_readings):
        ids = 'SENSOR_001,SENSOR_002,SENSOR_004,SENSOR_404'
        response = client.get(f'/api/readings/chart?sensor_ids={ids}&max_points=10&{WINDOW}')
        assert response.status_code == 200

        data = response.json['data']
        # 10 // 4 leaves two points per sensor, below what LTTB can produce
        assert data['metadata']['algorithm'] == 'minmax'
        assert data['metadata']['total_points'] <= 10
        assert data['metadata']['decimated'] is True
        for entry in data['series']:
            assert len(entry['data']) == 2
            assert entry['data'][0]['timestamp'] == '2024-01-01T00:00:00.000Z'
            assert entry['data'][-1]['timestamp'] == '2024-01-02T23:00:00.000Z'

    def test_unknown_sensor_is_skipped(self, client, seeded_readings):
        data = client.get(f'/api/readings/chart?sensor_ids=SENSOR_404&{WINDOW}').json['data']
        assert data['series'] == []
        assert data['metadata']['total_points'] == 0

    def test_requires_sensor_ids(self, client, db_session):
        response = client.get(f'/api/readings/chart?{WINDOW}')
        assert response.status_code == 400
        assert response.json['validation_errors'][0]['code'] == 'missing_sensors'

    def test_invalid_algorithm(self, client, db_session):
        response = client.get(f'/api/readings/chart?sensor_ids=SENSOR_001&algorithm=fancy&{WINDOW}')
        assert response.status_code == 400
        assert response.json['validation_errors'][0]['field'] == 'algorithm'


class TestReadingsSummary:
    """GET /api/readings/summary"""

    def test_summary(self, client, seeded_readings):
        response = client.get('/api/readings/summary')
        assert response.status_code == 200

        data = response.json['data']
        assert data['total_readings'] == 144
        assert data['active_sensors'] == 3
        assert data['registered_sensors'] == 3
        assert data['online_sensors'] == 3
        assert data['date_range'] == {'start': '2024-01-01T00:00:00.000Z', 'end': '2024-01-02T23:00:00.000Z'}
        assert [e['equipment_type'] for e in data['equipment']] == ['HVAC', 'Lighting', 'Water']
        assert all(e['reading_count'] == 48 for e in data['equipment'])
        assert sum(data['status_breakdown'].values()) == 144
        assert 0 <= data['anomaly_rate'] <= 1

    def test_summary_window(self, client, seeded_readings):
        data = client.get('/api/readings/summary?end_date=2024-01-01T11:00:00Z').json['data']
        assert data['total_readings'] == 36

    def test_summary_empty(self, client, db_session):
        data = client.get('/api/readings/summary').json['data']
        assert data['total_readings'] == 0
        assert data['equipment'] == []
        assert data['registered_sensors'] == 0

    def test_summary_invalid_date(self, client, db_session):
        assert client.get('/api/readings/summary?start_date=tomorrow').status_code == 400


class TestReadingsPatterns:
    """GET /api/readings/patterns"""

    def test_default_confidence_filters_small_samples(self, client, failing_readings):
        data = client.get(f'/api/readings/patterns?{WINDOW}').json['data']
        # 20 readings at 50% failure only reach 0.61 confidence
        assert data['patterns'] == []
        assert data['readings_analyzed'] == 40

    def test_detects_failing_sensor(self, client, failing_readings):
        response = client.get(f'/api/readings/patterns?min_confidence=0.5&{WINDOW}')
        assert response.status_code == 200

        data = response.json['data']
        assert data['total_patterns_found'] == 1
        pattern = data['patterns'][0]
        assert pattern['pattern_id'] == 'pattern_SENSOR_001_HVAC'
        assert pattern['failure_frequency'] == 0.5
        assert pattern['average_downtime_minutes'] == 60
        assert pattern['estimated_cost_impact'] == 4500
        assert pattern['confidence_score'] == 0.61
        assert data['total_estimated_impact'] == 4500
        assert data['analysis_period']['start'] == '2024-01-01T00:00:00+00:00'

    def test_equipment_filter(self, client, failing_readings):
        data = client.get(f'/api/readings/patterns?min_confidence=0.5&equipment_type=Power&{WINDOW}').json['data']
        assert data['patterns'] == []
        assert data['readings_analyzed'] == 20

    def test_invalid_equipment(self, client, db_session):
        response = client.get('/api/readings/patterns?equipment_type=Toaster')
        assert response.status_code == 400


@pytest.mark.parametrize('path', [
    '/api/readings/timeseries',
    '/api/readings/chart?sensor_ids=SENSOR_001',
    '/api/readings/summary',
    '/api/readings/patterns',
])
def test_readings_endpoints_are_rate_limited(app, client, db_session, path):
    app.config['RATE_LIMIT_PER_MINUTE'] = 1
    assert client.get(path).status_code == 200

    response = client.get(path)
    assert response.status_code == 429
    assert response.json['error_code'] == 'RATE_LIMIT_EXCEEDED'
