"""
Time-Series Decimation

FLOW OVERVIEW
- decimate_time_series_data(data, options)
  • Validate options, dispatch to the selected algorithm, optionally pin the
    first/last input points, and wrap the output in a DecimationResult.
- lttb_decimation(data, max_points, preserve_anomalies)
  • Largest Triangle Three Buckets. Best for keeping the visual shape.
- min_max_decimation(data, max_points)
  • Per-bucket min and max. Keeps extremes and overall range.
- simple_decimation(data, max_points)
  • Uniform stride sampling. Fast, may miss features.
- adaptive_decimation(data, max_points, preserve_anomalies)
  • Picks one of the above from the anomaly ratio and value variance.
- threshold_decimation(data, max_points)
  • Stride walk that keeps points with a non-zero triangle area or a
    non-normal status (the chart widget's quick path).
- benchmark_decimation(data, max_points)
  • Time every algorithm against the same input.
- algorithm_for_budget(algorithm, max_points)
  • Swap LTTB/adaptive for min-max when the budget is below three points.

All algorithms return a subsequence of the input in its original order and
never mutate the input list.
"""

import math
import time
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

import numpy as np

from .prom_metrics import observe_decimation

logger = logging.getLogger(__name__)

ALGORITHMS = ('lttb', 'minmax', 'simple', 'adaptive')
STATUSES = ('normal', 'warning', 'error')

# Adaptive selection thresholds
ANOMALY_RATIO_THRESHOLD = 0.1
VARIANCE_THRESHOLD = 1000

# LTTB keeps both endpoints plus at least one bucket
MIN_LTTB_POINTS = 3


class DecimationError(ValueError):
    """Raised for malformed points or unusable decimation options."""


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp. Naive values are treated as UTC."""
    parsed = datetime.fromisoformat(value.replace('Z', '+00:00'))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass
class TimeSeriesDataPoint:
    """A single reading as plotted on a chart."""
    timestamp: str
    value: float
    sensor_id: str
    status: str = 'normal'

    @property
    def epoch_ms(self) -> float:
        return parse_timestamp(self.timestamp).timestamp() * 1000.0

    @property
    def is_anomaly(self) -> bool:
        return self.status != 'normal'

    def to_dict(self) -> Dict[str, Any]:
        return {
            'timestamp': self.timestamp,
            'value': self.value,
            'sensor_id': self.sensor_id,
            'status': self.status,
        }

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> 'TimeSeriesDataPoint':
        """Build a point from a JSON object, raising DecimationError on bad input."""
        if not isinstance(raw, dict):
            raise DecimationError('Each point must be a JSON object')

        timestamp = raw.get('timestamp')
        if not isinstance(timestamp, str):
            raise DecimationError('Point timestamp must be an ISO-8601 string')
        try:
            parse_timestamp(timestamp)
        except ValueError:
            raise DecimationError(f'Invalid timestamp: {timestamp}')

        value = raw.get('value')
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise DecimationError('Point value must be a number')
        try:
            value = float(value)
        except OverflowError:
            raise DecimationError('Point value is too large')
        if not math.isfinite(value):
            raise DecimationError('Point value must be finite')

        status = raw.get('status', 'normal')
        if status not in STATUSES:
            raise DecimationError(f'Invalid status: {status}')

        return cls(
            timestamp=timestamp,
            value=value,
            sensor_id=str(raw.get('sensor_id', '')),
            status=status,
        )


@dataclass
class DecimationOptions:
    """Options accepted by decimate_time_series_data."""
    max_points: int
    algorithm: str = 'lttb'
    preserve_anomalies: bool = True
    preserve_edges: bool = False


@dataclass
class DecimationResult:
    """Decimated points plus bookkeeping about the reduction."""
    data: List[TimeSeriesDataPoint]
    original_length: int
    decimated_length: int
    compression_ratio: float
    algorithm: str
    elapsed_ms: Optional[float] = field(default=None)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'data': [point.to_dict() for point in self.data],
            'original_length': self.original_length,
            'decimated_length': self.decimated_length,
            'compression_ratio': round(self.compression_ratio, 2),
            'algorithm': self.algorithm,
            'elapsed_ms': self.elapsed_ms,
        }


def _validate_max_points(max_points: int) -> None:
    if isinstance(max_points, bool) or not isinstance(max_points, int):
        raise DecimationError('max_points must be an integer')
    if max_points < 1:
        raise DecimationError('max_points must be at least 1')


def _coordinates(data: Sequence[TimeSeriesDataPoint]):
    """Return (epoch_ms, value, anomaly) arrays for a series."""
    xs = np.fromiter((point.epoch_ms for point in data), dtype=float, count=len(data))
    ys = np.fromiter((point.value for point in data), dtype=float, count=len(data))
    anomalies = np.fromiter((point.is_anomaly for point in data), dtype=bool, count=len(data))
    return xs, ys, anomalies


def lttb_decimation(data: Sequence[TimeSeriesDataPoint], max_points: int,
                    preserve_anomalies: bool = True) -> List[TimeSeriesDataPoint]:
    """
    Largest Triangle Three Buckets.

    The first and last points are always kept. The interior is split into
    ``max_points - 2`` buckets; from each bucket the point forming the
    largest triangle with the previously selected point and the average of
    the next bucket is kept. Non-normal points get their area doubled when
    ``preserve_anomalies`` is set.
    """
    n = len(data)
    if n <= max_points or max_points < 3:
        return list(data)

    xs, ys, anomalies = _coordinates(data)
    every = (n - 2) / (max_points - 2)

    selected = [0]
    a = 0
    for i in range(max_points - 2):
        bucket_start = int(math.floor(i * every)) + 1
        bucket_end = min(int(math.floor((i + 1) * every)) + 1, n - 1)

        next_start = bucket_end
        next_end = min(int(math.floor((i + 2) * every)) + 1, n)
        if next_start >= n - 1:
            # Last bucket: the triangle closes on the final point
            avg_x, avg_y = xs[n - 1], ys[n - 1]
        else:
            avg_x = xs[next_start:next_end].mean()
            avg_y = ys[next_start:next_end].mean()

        ax, ay = xs[a], ys[a]
        areas = np.abs(
            (ax - avg_x) * (ys[bucket_start:bucket_end] - ay)
            - (ax - xs[bucket_start:bucket_end]) * (avg_y - ay)
        )
        if preserve_anomalies:
            areas = np.where(anomalies[bucket_start:bucket_end], areas * 2, areas)

        a = bucket_start + int(np.argmax(areas))
        selected.append(a)

    selected.append(n - 1)
    return [data[index] for index in selected]


def min_max_decimation(data: Sequence[TimeSeriesDataPoint], max_points: int) -> List[TimeSeriesDataPoint]:
    """Keep the min and max of each bucket; each bucket contributes up to two points."""
    n = len(data)
    if n <= max_points:
        return list(data)
    _validate_max_points(max_points)

    bucket_size = math.ceil(n / (max_points / 2))
    decimated = []
    seen_timestamps = set()

    for start in range(0, n, bucket_size):
        bucket = data[start:start + bucket_size]
        if not bucket:
            continue

        min_point = bucket[0]
        max_point = bucket[0]
        for point in bucket:
            if point.value < min_point.value:
                min_point = point
            if point.value > max_point.value:
                max_point = point

        for point in sorted((min_point, max_point), key=lambda p: p.epoch_ms):
            if point.timestamp not in seen_timestamps:
                seen_timestamps.add(point.timestamp)
                decimated.append(point)

    decimated.sort(key=lambda p: p.epoch_ms)
    return decimated[:max_points]


def simple_decimation(data: Sequence[TimeSeriesDataPoint], max_points: int) -> List[TimeSeriesDataPoint]:
    """Uniform stride sampling starting at the first point."""
    n = len(data)
    if n <= max_points:
        return list(data)
    _validate_max_points(max_points)

    step = math.ceil(n / max_points)
    return list(data[::step])


def calculate_variance(data: Sequence[TimeSeriesDataPoint]) -> float:
    """Sample variance of the point values; 0 for fewer than two points."""
    if len(data) < 2:
        return 0.0
    values = np.fromiter((point.value for point in data), dtype=float, count=len(data))
    return float(np.var(values, ddof=1))


def adaptive_decimation(data: Sequence[TimeSeriesDataPoint], max_points: int,
                        preserve_anomalies: bool = True) -> List[TimeSeriesDataPoint]:
    """
    Choose an algorithm from the data itself.

    - More than 10% anomalies: LTTB with anomaly weighting.
    - High variance: min-max, to keep extremes.
    - Otherwise: simple stride sampling is good enough.
    """
    n = len(data)
    if n <= max_points:
        return list(data)

    anomaly_ratio = sum(1 for point in data if point.is_anomaly) / n
    if anomaly_ratio > ANOMALY_RATIO_THRESHOLD:
        logger.debug(f"Adaptive decimation chose lttb (anomaly ratio {anomaly_ratio:.3f})")
        return lttb_decimation(data, max_points, True)

    variance = calculate_variance(data)
    if variance > VARIANCE_THRESHOLD:
        logger.debug(f"Adaptive decimation chose minmax (variance {variance:.1f})")
        return min_max_decimation(data, max_points)

    logger.debug("Adaptive decimation chose simple")
    return simple_decimation(data, max_points)


def threshold_decimation(data: Sequence[TimeSeriesDataPoint], max_points: int) -> List[TimeSeriesDataPoint]:
    """
    Stride walk used by the chart widget before handing points to the renderer.

    Keeps the first and last point, then every stride point whose triangle
    with its stride neighbours has non-zero area or whose status is not
    normal. Flat normal stretches collapse to their endpoints.
    """
    n = len(data)
    if n <= max_points:
        return list(data)
    _validate_max_points(max_points)

    step = math.ceil(n / max_points)
    decimated = [data[0]]

    for i in range(step, n - step, step):
        prev_point = data[i - step]
        current_point = data[i]
        next_point = data[i + step]

        area = abs(
            (prev_point.value - next_point.value) * (current_point.epoch_ms - prev_point.epoch_ms)
            - (prev_point.value - current_point.value) * (next_point.epoch_ms - prev_point.epoch_ms)
        )
        if area > 0 or current_point.is_anomaly:
            decimated.append(current_point)

    decimated.append(data[n - 1])
    return decimated


def algorithm_for_budget(algorithm: str, max_points: int) -> str:
    """
    Algorithm to run for a given point budget.

    LTTB returns its input unchanged below three points, and adaptive may
    pick LTTB, so tiny budgets are served by min-max instead.
    """
    if max_points < MIN_LTTB_POINTS and algorithm not in ('minmax', 'simple'):
        return 'minmax'
    return algorithm


def _apply_edges(data: Sequence[TimeSeriesDataPoint], decimated: List[TimeSeriesDataPoint]) -> List[TimeSeriesDataPoint]:
    """Swap in the input's first/last points when the algorithm dropped them."""
    timestamps = {point.timestamp for point in decimated}
    if data[0].timestamp not in timestamps:
        decimated = [data[0]] + decimated[1:]
    if data[-1].timestamp not in timestamps:
        decimated = decimated[:-1] + [data[-1]]
    return decimated


def decimate_time_series_data(data: Sequence[TimeSeriesDataPoint],
                              options: DecimationOptions) -> DecimationResult:
    """Apply the algorithm named in ``options`` and report the reduction."""
    _validate_max_points(options.max_points)

    started = time.perf_counter()
    algorithm = options.algorithm
    if algorithm == 'minmax':
        decimated = min_max_decimation(data, options.max_points)
    elif algorithm == 'simple':
        decimated = simple_decimation(data, options.max_points)
    elif algorithm == 'adaptive':
        decimated = adaptive_decimation(data, options.max_points, options.preserve_anomalies)
    else:
        if algorithm != 'lttb':
            logger.warning(f"Unknown decimation algorithm '{algorithm}', falling back to lttb")
        decimated = lttb_decimation(data, options.max_points, options.preserve_anomalies)

    if options.preserve_edges and len(data) > 2 and decimated:
        decimated = _apply_edges(data, decimated)

    elapsed_ms = (time.perf_counter() - started) * 1000
    original_length = len(data)
    compression_ratio = (1 - len(decimated) / original_length) * 100 if original_length else 0.0

    observe_decimation(algorithm if algorithm in ALGORITHMS else 'lttb', original_length, len(decimated), elapsed_ms / 1000)

    return DecimationResult(
        data=decimated,
        original_length=original_length,
        decimated_length=len(decimated),
        compression_ratio=compression_ratio,
        algorithm=algorithm,
        elapsed_ms=round(elapsed_ms, 3),
    )


def benchmark_decimation(data: Sequence[TimeSeriesDataPoint], max_points: int) -> Dict[str, Dict[str, Any]]:
    """Run every algorithm on the same input and report time (ms) and output size."""
    results = {}
    for algorithm in ALGORITHMS:
        start = time.perf_counter()
        result = decimate_time_series_data(data, DecimationOptions(max_points=max_points, algorithm=algorithm))
        end = time.perf_counter()

        results[algorithm] = {
            'time': (end - start) * 1000,
            'points': result.decimated_length,
            'algorithm': algorithm,
        }
    return results
