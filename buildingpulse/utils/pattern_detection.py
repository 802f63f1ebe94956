"""
Failure Pattern Detection

FLOW OVERVIEW
- detect_patterns(readings, min_confidence)
  • Group readings per (sensor_id, equipment_type) and count failures.
  • A failure is any non-normal status, or a zero reading on HVAC/Lighting equipment.
  • Keep groups with >= 5% failure frequency over >= 10 readings whose confidence
    reaches min_confidence; estimate downtime and monthly cost impact.
  • Sort by cost impact, highest first.
"""

import time
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Any, Iterable, List, Optional

MIN_FAILURE_FREQUENCY = 0.05
MIN_READINGS = 10
MAX_CONFIDENCE = 0.95

COST_PER_HOUR = {
    'HVAC': 150,
    'Lighting': 50,
}
DEFAULT_COST_PER_HOUR = 100

# Equipment that should never read exactly zero while running
ZERO_IS_FAILURE = ('HVAC', 'Lighting')


@dataclass
class EquipmentAnalysis:
    sensor_id: str
    floor_number: int
    equipment_type: str
    failures: int = 0
    total_readings: int = 0
    value_sum: float = 0.0

    @property
    def failure_frequency(self) -> float:
        return self.failures / self.total_readings if self.total_readings else 0.0

    @property
    def avg_value(self) -> float:
        return self.value_sum / self.total_readings if self.total_readings else 0.0


@dataclass
class PatternDetectionResult:
    patterns: List[Dict[str, Any]] = field(default_factory=list)
    readings_analyzed: int = 0

    @property
    def total_estimated_impact(self) -> int:
        return round(sum(pattern['estimated_cost_impact'] for pattern in self.patterns))

    def to_dict(self, start: Optional[str] = None, end: Optional[str] = None) -> Dict[str, Any]:
        return {
            'patterns': self.patterns,
            'analysis_period': {'start': start, 'end': end},
            'total_patterns_found': len(self.patterns),
            'total_estimated_impact': self.total_estimated_impact,
            'readings_analyzed': self.readings_analyzed
        }


def is_failure(equipment_type: str, reading_value: float, status: str) -> bool:
    if status != 'normal':
        return True
    return equipment_type in ZERO_IS_FAILURE and reading_value == 0


def confidence_score(total_readings: int, failure_frequency: float) -> float:
    """More readings and more consistent failures raise confidence, capped at 0.95."""
    return min(MAX_CONFIDENCE, 0.5 + (total_readings / 1000) * 0.3 + failure_frequency * 0.2)


class PatternDetector:
    """Finds sensors with recurring failures and estimates their cost."""

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    def detect_patterns(self, readings: Iterable, min_confidence: float = 0.7) -> PatternDetectionResult:
        """
        Analyze readings for recurring failures.

        Args:
            readings: SensorReading rows (or anything with the same attributes)
            min_confidence: Minimum confidence score (0..1) for a pattern to be reported

        Returns:
            PatternDetectionResult with patterns sorted by estimated cost impact
        """
        started = time.perf_counter()
        groups: Dict[tuple, EquipmentAnalysis] = {}
        analyzed = 0

        for reading in readings:
            analyzed += 1
            key = (reading.sensor_id, reading.equipment_type)
            analysis = groups.get(key)
            if analysis is None:
                analysis = EquipmentAnalysis(
                    sensor_id=reading.sensor_id,
                    floor_number=reading.floor_number,
                    equipment_type=reading.equipment_type
                )
                groups[key] = analysis

            analysis.total_readings += 1
            analysis.value_sum += reading.reading_value
            if is_failure(reading.equipment_type, reading.reading_value, reading.status):
                analysis.failures += 1

        detected_at = datetime.utcnow().isoformat() + 'Z'
        patterns = []
        for (sensor_id, equipment_type), analysis in groups.items():
            frequency = analysis.failure_frequency
            if frequency < MIN_FAILURE_FREQUENCY or analysis.total_readings < MIN_READINGS:
                continue

            confidence = confidence_score(analysis.total_readings, frequency)
            if confidence < min_confidence:
                continue

            cost_per_hour = COST_PER_HOUR.get(equipment_type, DEFAULT_COST_PER_HOUR)
            avg_downtime_hours = frequency * 2
            estimated_cost_impact = cost_per_hour * avg_downtime_hours * 30

            patterns.append({
                'pattern_id': f'pattern_{sensor_id}_{equipment_type}',
                'equipment_type': equipment_type,
                'floor_number': analysis.floor_number,
                'sensor_id': sensor_id,
                'failure_frequency': round(frequency, 2),
                'average_value': round(analysis.avg_value, 2),
                'average_downtime_minutes': round(avg_downtime_hours * 60),
                'estimated_cost_impact': round(estimated_cost_impact),
                'confidence_score': round(confidence, 2),
                'detected_at': detected_at
            })

        patterns.sort(key=lambda pattern: pattern['estimated_cost_impact'], reverse=True)

        elapsed_ms = (time.perf_counter() - started) * 1000
        self.logger.info(f"Pattern analysis completed in {elapsed_ms:.1f}ms ({len(patterns)} patterns found)")
        return PatternDetectionResult(patterns=patterns, readings_analyzed=analyzed)


# Global instance
pattern_detector = PatternDetector()
