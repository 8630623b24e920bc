"""
Reminder subsystem.

Components:
- models.py: data structures (Task, ReminderTier, CandidateResult, RunSummary)
- render.py: pure subject/body/html rendering per tier
- dispatcher.py: windowed sweep + polling loop, batched latch commit
- manual.py: on-demand single-task reminder with ownership check
"""
