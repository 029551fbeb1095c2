"""
Retrieval pipeline

validate -> rank -> build -> stats, orchestrated by TriggerEngine and
optionally driven by the debounced RealTimeScheduler.
"""

from loretrigger.pipeline.engine import TriggerEngine
from loretrigger.pipeline.injection_builder import InjectionBuilder, apply_template, render_entry
from loretrigger.pipeline.ranker import rank
from loretrigger.pipeline.realtime import RealTimeScheduler, SchedulerState
from loretrigger.pipeline.stats_tracker import StatsTracker
from loretrigger.pipeline.validator import TriggerValidator
