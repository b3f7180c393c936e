from alchemist.report.finding_report import FindingReport

__all__ = ["FindingReport"]
