"""

The default configuration file for influxpush. Also intended as a comprehensive
configuration reference. This is Python code, parsed only once when the command
starts. $$NAME placeholders are substituted from the environment before the
file is executed, so a missing variable makes the command fail fast. Use $$ for
a literal dollar sign.

- Every public top-level name becomes a configuration option, unknown options
  are ignored.
- There is no "live reload", the config is read once per run.

"""


# log_level
# - str
# - Optional, default: 'INFO'
# - More here: https://docs.python.org/3/library/logging.html#levels
log_level = "INFO"


# log_format
# - str
# - Optional, default: '[%(asctime)-15s][%(levelname)s] %(name)s(%(process)d) - %(message)s'
# - More here: https://docs.python.org/3/library/logging.html#logrecord-attributes
# - Example: log_format = '%(message)s'


# base_url
# - str, InfluxDB HTTP API root
# - Required
# - Only http:// is supported. The write endpoint is derived from it as
#   {base_url}/write?db={database}&precision={precision}
base_url = "http://localhost:8086"


# database
# - str, the database the metrics are written to
# - Required
database = "telemetry"


# precision
# - str, the unit metric timestamps are truncated to
# - Required
# - One of "n", "u", "ms", "s", "m", "h" (or "nano", "micro", "milli", "second",
#   "minute", "hour"). Truncation, not rounding, is used. Keep it as coarse as your
#   data allows, InfluxDB compresses coarse timestamps better.
precision = "ms"


# flush_threshold
# - int, bytes of encoded lines buffered before a write request is made
# - Optional, default: 2048
# - Every metric added is encoded and appended to the buffer, once the buffer reaches
#   this size it is sent out as one request. Explicit flushes send whatever is buffered.
#   In any case, flush_threshold is enforced to be at least 1.
# - Example: flush_threshold = 65536


# capture_failures
# - bool, if failed write requests should be recorded
# - Optional, default: False
# - When False, failed writes are only counted (and logged at DEBUG level).
#   Nothing is ever retried automatically.
capture_failures = True


# max_failures
# - int, max number of failure descriptions kept
# - Optional, default: 100
# - Oldest entries are dropped first. In any case, max_failures is enforced to be at least 1.


# request_timeout
# - float, seconds a write request is allowed to take
# - Optional, default: None
# - By default requests never time out. In any case, request_timeout is enforced
#   to be at least 0.1 sec.
# - Example: request_timeout = 10


# username, password
# - str, credentials sent with HTTP Basic authentication
# - Optional, default: None
# - Example: username = "$${INFLUX_USER}"


# metadata
# - dict of str:str, extra tags injected into metrics
# - Optional, default: None
# - A union operation with the metric tags taking precedence, keys defined here only get
#   added when not present in the metric. Empty values are skipped.
# - Example: metadata = dict(host="$${HOSTNAME}")


# client_inactive
# - bool, switches the output off
# - Optional, default: False
# - Metrics are still encoded, so malformed input is still reported, but nothing is sent.


# poll_interval
# - float, seconds the command waits for network activity between polls
# - Optional, default: 0.05


# drain_timeout
# - float, seconds the command waits for pending writes before giving up
# - Optional, default: 30
