import logging
import urllib.parse
import influxpush.engine as engine
import influxpush.transport as transport
from influxpush.errors import InfluxPushError
from influxpush.metric import encode_metric, get_precision


DEFAULT_FLUSH_THRESHOLD = 2048


def format_write_url(base_url, database, precision):
    # https://docs.influxdata.com/influxdb/v1/tools/api/#write-http-endpoint
    query = urllib.parse.urlencode((('db', database), ('precision', get_precision(precision))))
    return base_url.rstrip('/') + '/write?' + query


class BufferedWriter:
    def __init__(self, submit, flush_threshold=DEFAULT_FLUSH_THRESHOLD):
        self.log = logging.getLogger('influxpush.client')
        self.submit = submit
        self.flush_threshold = max(flush_threshold, 1)
        self.buffer = bytearray()
        self.lines = 0
        self.lines_dropped = 0
        self.bytes_dropped = 0

    def __len__(self):
        return len(self.buffer)

    def append(self, line):
        self.buffer.extend(line.encode('utf-8'))
        self.lines += 1
        if len(self.buffer) >= self.flush_threshold:
            self.flush()

    def flush(self):
        if not self.buffer:
            return False
        body, lines = bytes(self.buffer), self.lines
        self.buffer.clear()
        self.lines = 0
        try:
            self.submit(body)
        except InfluxPushError:
            # The buffer is empty either way, a failed body is not retried
            self.lines_dropped += lines
            self.bytes_dropped += len(body)
            self.log.warning("Dropped %d lines (%d bytes) that could not be submitted", lines, len(body))
            raise
        return True


class InfluxDBClient:
    def __init__(self, base_url, database, precision, flush_threshold=DEFAULT_FLUSH_THRESHOLD,
                 capture_failures=False, metadata=None, **engine_options):
        self.log = logging.getLogger('influxpush.client')
        self.precision = get_precision(precision)
        self.write_url = format_write_url(base_url, database, self.precision)
        self.metadata = metadata or {}
        self.engine = engine.TransferEngine(self.write_url, capture_failures=capture_failures, **engine_options)
        self.writer = BufferedWriter(self.engine.submit, flush_threshold)
        self.metrics_added = 0
        self.log.info("Writing to %s", self.write_url)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()

    def add_metric(self, metric):
        line = encode_metric(metric, self.precision, self.metadata)
        # Counted once accepted, a failed flush then reports it as dropped
        self.metrics_added += 1
        self.writer.append(line)

    def flush(self):
        return self.writer.flush()

    def poll(self):
        return self.engine.poll()

    def is_active(self):
        return self.engine.is_active()

    def get_failures(self):
        return self.engine.get_failures()

    def clear_failures(self):
        self.engine.clear_failures()

    def drain(self, timeout=None, interval=0.05):
        return self.engine.drain(timeout, interval)

    def close(self, drain=True, timeout=None):
        if drain:
            self.writer.flush()
        elif len(self.writer):
            self.log.warning("Dropping %d unflushed bytes", len(self.writer))
        self.engine.close(drain, timeout)

    def produce_self_report(self):
        self_report = self.engine.produce_self_report()
        self_report['metrics_added'] = self.metrics_added
        self_report['bytes_buffered'] = len(self.writer)
        self_report['metrics_dropped'] = self.writer.lines_dropped
        self_report['bytes_dropped'] = self.writer.bytes_dropped
        return self_report


class NullClient:
    # Stands in for InfluxDBClient when the output is switched off,
    # metrics are still encoded so that bad ones fail the same way.
    def __init__(self, precision='n', metadata=None):
        self.precision = get_precision(precision)
        self.metadata = metadata or {}
        self.metrics_added = 0

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()

    def add_metric(self, metric):
        encode_metric(metric, self.precision, self.metadata)
        self.metrics_added += 1

    def flush(self):
        return False

    def poll(self):
        return 0

    def is_active(self):
        return False

    def get_failures(self):
        return []

    def clear_failures(self):
        pass

    def drain(self, timeout=None, interval=0.05):
        return True

    def close(self, drain=True, timeout=None):
        pass

    def produce_self_report(self):
        return {'metrics_added': self.metrics_added}


def create_client(cfg, transport_factory=transport.Transport):
    if cfg.get('client_inactive', False):
        return NullClient(cfg.get('precision', 'n'), cfg.get('metadata'))
    for k in ('base_url', 'database', 'precision'):
        if not cfg.get(k):
            raise ValueError("Missing required config option " + k)
    request_timeout = cfg.get('request_timeout')
    if request_timeout is not None:
        request_timeout = max(request_timeout, 0.1)
    return InfluxDBClient(
        cfg['base_url'], cfg['database'], cfg['precision'],
        flush_threshold=cfg.get('flush_threshold', DEFAULT_FLUSH_THRESHOLD),
        capture_failures=cfg.get('capture_failures', False),
        metadata=cfg.get('metadata'),
        max_failures=cfg.get('max_failures', 100),
        request_timeout=request_timeout,
        username=cfg.get('username'),
        password=cfg.get('password'),
        transport_factory=transport_factory,
    )
