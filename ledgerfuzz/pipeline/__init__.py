"""Campaign orchestration."""

from ledgerfuzz.pipeline.orchestrator import CampaignResult, FuzzOrchestrator, run_campaign

__all__ = ["CampaignResult", "FuzzOrchestrator", "run_campaign"]
