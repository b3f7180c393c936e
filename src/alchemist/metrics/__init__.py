from alchemist.metrics.logger import write_metrics
from alchemist.metrics.metrics import collect_metrics, phase_capacity_table, skill_coverage

__all__ = ["collect_metrics", "phase_capacity_table", "skill_coverage", "write_metrics"]
