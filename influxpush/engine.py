import time
import base64
import http.client
import logging
import urllib.parse
import influxpush.common as common
import influxpush.transport as transport
from influxpush.errors import RequestCreationError, SubmissionError


class TransferEngine:
    def __init__(self, write_url, capture_failures=False, max_failures=100, request_timeout=None,
                 username=None, password=None, transport_factory=transport.Transport):
        self.log = logging.getLogger('influxpush.engine')
        url = urllib.parse.urlsplit(write_url)
        if url.scheme != 'http' or not url.hostname:
            raise ValueError("Write URL %s is invalid, only http:// is supported" % (write_url,))
        self.write_url = write_url
        self.host, self.port = url.hostname, url.port or 80
        self.host_header = url.netloc.rpartition('@')[2]
        self.target = (url.path or '/') + ('?' + url.query if url.query else '')
        self.headers = {'Content-Type': 'text/plain; charset=utf-8'}
        if username is not None:
            credentials = (username + ':' + (password or '')).encode('utf-8')
            self.headers['Authorization'] = 'Basic ' + base64.b64encode(credentials).decode('ascii')
        self.request_timeout = request_timeout
        self.capture_failures = capture_failures
        self.max_failures = max(max_failures, 1)
        self.failures = []
        self.active = 0
        self.requests_submitted = 0
        self.requests_succeeded = 0
        self.requests_failed = 0
        self.bytes_submitted = 0
        # InitializationError propagates, there is nothing to fall back to
        self.transport = transport_factory()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()

    def resolve_endpoint(self):
        addresses = common.resolve_host(self.host, self.port)
        if not addresses:
            raise RequestCreationError("Could not resolve " + self.host)
        return addresses

    def create_request(self, body):
        return transport.Request(
            self.resolve_endpoint(), self.host_header, self.target, body,
            headers=self.headers, timeout=self.request_timeout
        )

    def submit(self, body):
        try:
            request = self.create_request(body)
        except (OSError, ValueError, http.client.HTTPException) as e:
            raise RequestCreationError("Could not create request: " + str(e)) from e
        # Counted as active before it makes any progress
        self.active += 1
        try:
            self.transport.add_request(request)
        except SubmissionError:
            self.active -= 1
            raise
        self.requests_submitted += 1
        self.bytes_submitted += len(body)
        self.log.debug("Submitted %d bytes to %s", len(body), self.write_url)
        return request

    def poll(self):
        previously_active = self.active
        self.active = self.transport.perform()
        if self.active < previously_active:
            while True:
                request = self.transport.info_read()
                if request is None:
                    break
                self.transport.remove_request(request)
                self.complete(request)
        return self.active

    def complete(self, request):
        if request.succeeded():
            self.requests_succeeded += 1
            self.log.debug("Write to %s completed", self.write_url)
            return
        self.requests_failed += 1
        description = request.describe()
        self.log.debug(description)
        if self.capture_failures:
            self.failures.append(description)
            if len(self.failures) > self.max_failures:
                dropped = len(self.failures) - self.max_failures
                self.failures = self.failures[dropped:]
                self.log.warning("Failure list trimmed, %d oldest entries dropped", dropped)

    def is_active(self):
        return self.active > 0

    def get_failures(self):
        return list(self.failures)

    def clear_failures(self):
        self.failures = []

    def drain(self, timeout=None, interval=0.05):
        deadline = None if timeout is None else time.monotonic() + timeout
        while self.poll():
            if deadline is not None:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    self.log.warning("%d requests still active after %gs", self.active, timeout)
                    return False
                interval = min(interval, remaining)
            self.transport.wait(interval)
        return True

    def close(self, drain=True, timeout=None):
        if drain and not self.transport.closed:
            self.drain(timeout)
        if self.active:
            self.log.warning("Abandoning %d active requests", self.active)
            self.requests_failed += self.active
            self.active = 0
        self.transport.close()

    def produce_self_report(self):
        return {
            'requests_active': self.active,
            'requests_submitted': self.requests_submitted,
            'requests_succeeded': self.requests_succeeded,
            'requests_failed': self.requests_failed,
            'bytes_submitted': self.bytes_submitted,
            'failures_captured': len(self.failures),
        }
