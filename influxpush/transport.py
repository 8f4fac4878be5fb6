import io
import os
import time
import errno
import socket
import logging
import selectors
import http.client
from influxpush.errors import InitializationError, SubmissionError


CREATED, CONNECTING, SENDING, RECEIVING, DONE = 'created', 'connecting', 'sending', 'receiving', 'done'

# Responses are only inspected for the status line and an error message,
# InfluxDB replies to a successful write with an empty 204.
MAX_RESPONSE_SIZE = 64 * 1024

log = logging.getLogger('influxpush.transport')


class BufferSocket:
    # Stands in for a connected socket, so that http.client renders requests into
    # and parses responses from memory while the real I/O stays non-blocking.
    def __init__(self, data=b''):
        self.data = data
        self.sent = bytearray()

    def sendall(self, data):
        self.sent.extend(data)

    def makefile(self, mode, *args, **kwargs):
        return io.BytesIO(self.data)

    def close(self):
        pass


class RequestEncoder(http.client.HTTPConnection):
    def connect(self):
        self.sock = BufferSocket()


def encode_request(host, target, body, headers=None):
    conn = RequestEncoder(host)
    headers = dict(headers or {})
    headers['Connection'] = 'close'
    conn.request('POST', target, body=body, headers=headers)
    return bytes(conn.sock.sent)


def read_response(data):
    # Returns (status, reason, body), a body cut short is returned as far as it goes.
    response = http.client.HTTPResponse(BufferSocket(bytes(data)))
    response.begin()
    try:
        body = response.read()
    except http.client.IncompleteRead as e:
        body = e.partial
    return response.status, response.reason, body


class Request:
    def __init__(self, addresses, host, target, body, headers=None, timeout=None):
        self.addresses = list(addresses)
        self.host = host
        self.target = target
        self.body = bytes(body)
        self.timeout = timeout
        self.outgoing = encode_request(host, target, self.body, headers)
        self.state = CREATED
        self.selector = self.sock = None
        self.sent = 0
        self.received = bytearray()
        self.started = self.response = self.error = self.last_error = None
        self.reported = False

    def __repr__(self):
        return '<Request POST %s%s %s>' % (self.host, self.target, self.state)

    def describe(self):
        prefix = 'POST http://' + self.host + self.target + ' failed: '
        if self.error is not None:
            return prefix + self.error
        status, reason, body = self.response
        message = 'HTTP %d %s' % (status, reason)
        body = body.decode('utf-8', 'replace').strip()
        if body:
            message += ': ' + body[:200]
        return prefix + message

    def succeeded(self):
        return self.error is None and self.response is not None and 200 <= self.response[0] < 300

    def expired(self, now):
        return self.timeout is not None and self.started is not None and now - self.started > self.timeout

    def start(self, selector, now):
        self.selector, self.started = selector, now
        try:
            self.connect_next()
        except OSError as e:
            # i.e. out of file descriptors
            self.fail(e.strerror or str(e))

    def connect_next(self):
        self.close()
        while self.addresses:
            family, sockaddr = self.addresses.pop(0)
            sock = socket.socket(family, socket.SOCK_STREAM)
            sock.setblocking(False)
            err = sock.connect_ex(sockaddr)
            if err in (0, errno.EINPROGRESS, errno.EWOULDBLOCK, errno.EAGAIN):
                self.sock, self.state = sock, CONNECTING
                self.selector.register(sock, selectors.EVENT_WRITE, self)
                return
            sock.close()
            self.last_error = os.strerror(err)
        self.fail(self.last_error or 'No address to connect to')

    def on_event(self, mask):
        try:
            if self.state == CONNECTING:
                err = self.sock.getsockopt(socket.SOL_SOCKET, socket.SO_ERROR)
                if err:
                    self.last_error = os.strerror(err)
                    self.connect_next()
                    return
                self.state = SENDING
            if self.state == SENDING and mask & selectors.EVENT_WRITE:
                self.send()
            elif self.state == RECEIVING and mask & selectors.EVENT_READ:
                self.receive()
        except OSError as e:
            self.fail(e.strerror or str(e))

    def send(self):
        try:
            self.sent += self.sock.send(memoryview(self.outgoing)[self.sent:])
        except BlockingIOError:
            return
        if self.sent >= len(self.outgoing):
            self.state = RECEIVING
            self.selector.modify(self.sock, selectors.EVENT_READ, self)

    def receive(self):
        try:
            data = self.sock.recv(65536)
        except BlockingIOError:
            return
        self.received.extend(data)
        if data and len(self.received) <= MAX_RESPONSE_SIZE:
            return
        if data and b'\r\n\r\n' not in self.received:
            self.fail('Response headers too large')
            return
        # Connection: close, so EOF ends the response. Past the size limit only
        # the status matters and the rest of the body is not read.
        try:
            self.response = read_response(self.received)
        except http.client.HTTPException as e:
            self.fail('Malformed response: ' + (str(e) or type(e).__name__))
            return
        self.finish()

    def fail(self, message):
        self.error = message
        self.finish()

    def finish(self):
        self.close()
        self.state = DONE

    def close(self):
        if self.sock is not None:
            self.selector.unregister(self.sock)
            self.sock.close()
        self.sock = None


class Transport:
    """
    Drives many Requests over non-blocking sockets, one step per perform() call.
    Finished requests are queued until collected with info_read().
    """

    def __init__(self):
        try:
            self.selector = selectors.DefaultSelector()
        except OSError as e:
            raise InitializationError('Could not create selector: ' + str(e)) from e
        self.requests = []
        self.messages = []
        self.closed = False

    def add_request(self, request):
        if self.closed:
            raise SubmissionError('Transport is closed')
        if request in self.requests or request.state != CREATED:
            raise SubmissionError('Request has already been added')
        self.requests.append(request)

    def remove_request(self, request):
        if request in self.requests:
            self.requests.remove(request)
        if request in self.messages:
            self.messages.remove(request)
        request.close()

    def perform(self):
        now = time.monotonic()
        for request in self.requests:
            if request.state == CREATED:
                log.debug('Starting %s', request)
                request.start(self.selector, now)
        if self.selector.get_map():
            for key, mask in self.selector.select(0):
                key.data.on_event(mask)
        now, running = time.monotonic(), 0
        for request in self.requests:
            if request.state != DONE and request.expired(now):
                request.fail('Timed out after %gs' % (request.timeout,))
            if request.state != DONE:
                running += 1
            elif not request.reported:
                request.reported = True
                self.messages.append(request)
        return running

    def info_read(self):
        if self.messages:
            return self.messages.pop(0)
        return None

    def wait(self, timeout):
        if self.closed or any(request.state == CREATED for request in self.requests):
            return
        if self.selector.get_map():
            self.selector.select(timeout)

    def close(self):
        for request in self.requests:
            request.close()
        self.requests, self.messages = [], []
        if not self.closed:
            self.selector.close()
        self.closed = True
