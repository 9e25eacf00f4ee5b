"""
Telemetry store node: tracker records in, InfluxDB speed/duration series out.
"""
