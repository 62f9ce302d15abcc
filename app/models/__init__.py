from .sensor_sample import SensorSample, MetricType
from .medication import Medication
from .baseline import BaselineMetrics, BaselineHistory
from .daily_summary import DailySummary

__all__ = [
    "SensorSample",
    "MetricType",
    "Medication",
    "BaselineMetrics",
    "BaselineHistory",
    "DailySummary",
]
