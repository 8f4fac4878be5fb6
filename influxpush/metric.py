import math
import time
from influxpush.errors import EncodingError


# https://docs.influxdata.com/influxdb/v1/write_protocols/line_protocol_reference/
# Nanoseconds in one unit of each precision the write endpoint accepts.
PRECISIONS = {
    'n': 1,
    'u': 1000,
    'ms': 1000000,
    's': 1000000000,
    'm': 60 * 1000000000,
    'h': 3600 * 1000000000,
}

PRECISION_ALIASES = {
    'nano': 'n',
    'micro': 'u',
    'milli': 'ms',
    'second': 's',
    'minute': 'm',
    'hour': 'h',
}


def get_precision(name):
    code = PRECISION_ALIASES.get(name, name)
    if code not in PRECISIONS:
        raise ValueError("Invalid precision %s" % (name,))
    return code


def escape_tag(value):
    return value.replace(',', '\\,').replace(' ', '\\ ').replace('=', '\\=')


def quote_field(value):
    return '"' + value.replace('\\', '\\\\').replace('"', '\\"') + '"'


class Metric:
    def __init__(self, measurement, timestamp=None):
        if not isinstance(measurement, str) or not measurement:
            raise ValueError("Measurement name has to be a non-empty string")
        self.measurement = measurement
        self.tags = []
        self.fields = []
        # Captured once, nanoseconds since the epoch
        self.timestamp = time.time_ns() if timestamp is None else int(timestamp)

    def __repr__(self):
        return 'Metric(%r, tags=%r, fields=%r, timestamp=%d)' % (
            self.measurement, self.tags, self.fields, self.timestamp
        )

    def add_tag(self, key, value):
        # A tag without a value cannot be written, it is left out
        if value is None or value == '':
            return self
        if isinstance(value, str):
            value = escape_tag(value)
        else:
            value = str(value)
        self.tags.append(str(key) + '=' + value)
        return self

    def add_field(self, key, value):
        if isinstance(value, float) and not math.isfinite(value):
            raise ValueError("Field %s has no line protocol form: %s" % (key, value))
        if isinstance(value, (float, int, bool)):
            self.fields.append(str(key) + '=' + str(value))
        elif isinstance(value, str):
            self.fields.append(str(key) + '=' + quote_field(value))
        else:
            raise TypeError("Unsupported field type %s for %s" % (type(value).__name__, key))
        return self

    def has_tag(self, key):
        prefix = str(key) + '='
        return any(tag.startswith(prefix) for tag in self.tags)


def encode_metric(metric, precision, extra_tags=None):
    if not metric.fields:
        raise EncodingError("Metric %s has no fields" % (metric.measurement,))
    line_buf = [metric.measurement]
    line_buf.extend(metric.tags)
    if extra_tags:
        # Default tags only fill in the keys the metric doesn't set itself
        for k in sorted(extra_tags.keys()):
            v = extra_tags[k]
            # InfluxDB will drop insert with empty tags
            if v is None or v == '' or metric.has_tag(k):
                continue
            line_buf.append(k + '=' + escape_tag(str(v)))
    line = ','.join(line_buf) + ' ' + ','.join(metric.fields)
    return line + ' ' + str(metric.timestamp // PRECISIONS[precision]) + '\n'
