from .base import BaseCheck, CheckRegistry
from .consistency import CONSISTENCY_CHECKS
from .anomalies import ANOMALY_CHECKS
from .overrides import OVERRIDE_CHECKS
from .trends import TREND_CHECKS

ALL_CHECKS = CONSISTENCY_CHECKS + ANOMALY_CHECKS + OVERRIDE_CHECKS + TREND_CHECKS
