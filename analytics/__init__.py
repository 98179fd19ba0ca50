"""Analytics sink: optional Snowflake event log for triage outcomes."""

from analytics.snowflake_sink import SnowflakeNotifier, snowflake_configured

__all__ = ["SnowflakeNotifier", "snowflake_configured"]
