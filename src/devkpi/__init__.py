"""Monthly developer KPI aggregation and scoring."""
