from .summary import SummaryService, build_messages

__all__ = ["SummaryService", "build_messages"]
