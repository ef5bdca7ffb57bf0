from .dashboard import DashboardPipeline

__all__ = ["DashboardPipeline"]
