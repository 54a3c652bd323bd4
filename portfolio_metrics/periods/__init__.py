"""Calendar arithmetic for reporting periods and recurring schedules.

This package provides:
- Reporting periods and labels per cadence (monthly, quarterly, annual)
- Next-run and reminder date calculation for recurring metric requests
- Normalization of imprecise period dates to canonical boundaries

All functions are pure. Run dates are fixed at 06:00 UTC and reminders at
09:00 UTC so schedules compare the same way regardless of caller timezone.
"""
