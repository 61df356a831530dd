# SPDX-License-Identifier: BSD-3-Clause

"""Markup validation by the Nu Html Checker (v.Nu).

L{VNUClient} talks to the checker's web service; L{VNUValidator} turns
the checker's messages into violations. The service can run elsewhere,
or be launched locally from C{vnu.jar}, which the C{html5validator}
package ships as its C{vnujar} module.

The checker is written in Java, so launching it requires a Java
runtime (JRE).

You can find the checker itself at <https://validator.github.io/>
"""

from __future__ import annotations

import json
from gzip import GzipFile
from http.client import HTTPConnection, HTTPException, HTTPResponse, HTTPSConnection
from io import BytesIO
from logging import getLogger
from pathlib import Path
from socket import AF_INET, SOCK_STREAM, socket  # pylint: disable=no-name-in-module
from subprocess import DEVNULL, Popen
from time import sleep
from typing import Any, Iterator, Mapping
from urllib.parse import urljoin, urlsplit

from pagecheck.document import Document
from pagecheck.validator import (
    ExternalValidatorFailure,
    ValidationResult,
    Validator,
    ValidatorOptions,
    Violation,
)

_LOG = getLogger(__name__)

_LOCAL_HOSTS = ("localhost", "127.0.0.1", "::1")


class RedirectError(HTTPException):
    """Raised when a redirect from the service cannot be followed."""

    def __init__(self, msg: str, url: str):
        super().__init__(msg, url)
        self.msg = msg
        self.url = url
        """URL that we were redirected from."""

    def __str__(self) -> str:
        return f"{self.msg} at {self.url}"


class RequestFailed(HTTPException):
    """Raised when the service answers with a non-successful status."""

    def __init__(self, response: HTTPResponse):
        super().__init__(response.reason, response.status)
        self.msg = response.reason
        self.status = response.status

    def __str__(self) -> str:
        return f"{self.msg} ({self.status:d})"


class VNUClient:
    """Manages a connection to the checker web service.

    The connection is opened on demand and stays open until L{close}
    is called, either directly or by using the client as a context
    manager. A closed client can be used again: it will reconnect.
    """

    max_refused = 20
    """Connection refusals tolerated while waiting for the service to start."""

    max_retries = 3
    """Attempts made for other I/O problems before giving up."""

    max_redirects = 12

    def __init__(self, url: str):
        """Initialize a client for the v.Nu checker at C{url}."""
        self.service_url = url
        self._connection: HTTPConnection | None = None
        self._remote: tuple[str, str] | None = None

    def __enter__(self) -> "VNUClient":
        return self

    def __exit__(self, exc_type: object, exc_value: object, traceback: object) -> None:
        self.close()

    def _connect(self, url: str) -> HTTPConnection:
        """Return a connection to the host of C{url}, reusing the current
        one if it leads to the same place.

        @raise OSError: If the URL has no scheme or an unsupported one.
        """
        parts = urlsplit(url)
        remote = (parts.scheme, parts.netloc)
        if self._connection is not None:
            if self._remote == remote:
                return self._connection
            self.close()

        if parts.scheme == "http":
            connection = HTTPConnection(parts.netloc)
        elif parts.scheme == "https":
            connection = HTTPSConnection(parts.netloc)
        elif parts.scheme:
            raise OSError(f"Unsupported URL scheme: {parts.scheme}")
        else:
            raise OSError(f'URL "{url}" lacks a scheme (such as "http:")')

        self._connection = connection
        self._remote = remote
        return connection

    def close(self) -> None:
        """Close the current connection, if any."""
        if self._connection is not None:
            self._connection.close()
            self._connection = None
            self._remote = None

    def _post(self, url: str, data: bytes, content_type: str) -> tuple[HTTPResponse, bytes | None]:
        """POST C{data} to C{url}, retrying on transient failures.

        Returns the closed response and its body; the body is C{None}
        unless the status is 200.
        """
        parts = urlsplit(url)
        path = parts.path or "/"
        if parts.query:
            path += "?" + parts.query

        headers = {"Content-Type": content_type, "User-Agent": "pagecheck-vnu/1.0"}
        if parts.hostname in _LOCAL_HOSTS:
            headers["Accept-Encoding"] = "identity, gzip;q=0.5"
            body = data
        else:
            # Compress when an actual network is involved.
            headers["Accept-Encoding"] = "gzip"
            headers["Content-Encoding"] = "gzip"
            with BytesIO() as buf:
                with GzipFile(None, "wb", 6, buf) as zfile:
                    zfile.write(data)
                body = buf.getvalue()

        refused = 0
        failed = 0
        while True:
            try:
                connection = self._connect(url)
                connection.request("POST", path, body, headers)
                response = connection.getresponse()
                reply: bytes | None = None
                if response.status == 200:
                    encoding = response.getheader("Content-Encoding", "identity")
                    if encoding.lower() in ("gzip", "x-gzip"):
                        with GzipFile(fileobj=response) as zfile:
                            reply = zfile.read()
                    else:
                        reply = response.read()
                response.close()
                return response, reply
            except ConnectionRefusedError:
                self.close()
                refused += 1
                if refused >= self.max_refused:
                    raise
                _LOG.info("v.Nu service refuses connection; trying again in 1 second")
                sleep(1)
            except (HTTPException, OSError):
                self.close()
                failed += 1
                if failed >= self.max_retries:
                    raise

    def _fetch_reply(self, url: str, data: bytes, content_type: str) -> str:
        """Send the document to the service, following redirects,
        and return the decoded reply body.
        """
        for redirect_ in range(self.max_redirects + 1):
            response, body = self._post(url, data, content_type)
            status = response.status
            if status == 200:
                assert body is not None
                charset = response.msg.get_content_charset("utf-8")
                return body.decode(charset)
            if status not in (301, 302, 307, 308):
                raise RequestFailed(response)
            location = response.getheader("Location")
            if location is None:
                raise RedirectError(f"Redirect ({status:d}) without Location", url)
            new_url = urljoin(url, location)
            if new_url == url:
                raise RedirectError("Redirect loop", url)
            url = new_url
        raise RedirectError("Maximum redirect count exceeded", url)

    def request(self, data: bytes, content_type: str) -> Iterator[dict[str, Any]]:
        """Feed a document to the checker and yield its messages.

        @param data:
            Document to check.
        @param content_type:
            Media type for the document, which can include the encoding,
            for example C{"text/html; charset=utf-8"}.
        @return:
            Message objects as described in
            U{the checker's JSON output format
            <https://github.com/validator/validator/wiki/Output-»-JSON>}.
        @raise OSError:
            When an unrecoverable low-level I/O error occurs.
        @raise HTTPException:
            When an unrecoverable HTTP error occurs.
        @raise ValueError:
            When the reply could not be decoded or parsed.
        """
        url = self.service_url + "?out=json"
        reply = json.loads(self._fetch_reply(url, data, content_type))
        yield from reply["messages"]


def _pick_port() -> int:
    """Return a TCP port that is currently unused."""
    with socket(AF_INET, SOCK_STREAM) as sock:
        sock.bind(("", 0))
        port: int = sock.getsockname()[1]
        return port


def find_vnujar() -> Path:
    """Return the path of C{vnu.jar} from the C{vnujar} module.

    @raise ExternalValidatorFailure: If C{vnu.jar} cannot be found.
    """
    try:
        import vnujar  # pylint: disable=import-outside-toplevel
    except ImportError as ex:
        raise ExternalValidatorFailure(
            'Please install the "vnujar" module, for example using '
            '"pip install html5validator"'
        ) from ex
    jar_path = Path(vnujar.__file__).with_name("vnu.jar")
    if not jar_path.exists():
        raise ExternalValidatorFailure(
            'The "vnujar" module exists, but does not contain "vnu.jar"'
        )
    return jar_path


def launch_service(jar_path: Path) -> tuple["Popen[bytes]", str]:
    """Start the checker servlet from C{jar_path} on a free local port.

    @return: C{(process, service_url)}
    """
    port = _pick_port()
    args = (
        "java",
        "-Xss4m",
        "-Dnu.validator.servlet.bind-address=localhost",
        "-cp",
        str(jar_path),
        "nu.validator.servlet.Main",
        str(port),
    )
    try:
        proc = Popen(args, stdin=DEVNULL)  # pylint: disable=consider-using-with
    except OSError as ex:
        raise ExternalValidatorFailure(
            f"Failed to launch v.Nu checker servlet: {ex}"
        ) from ex
    return proc, f"http://localhost:{port:d}"


def message_to_violation(message: Mapping[str, Any]) -> Violation | None:
    """Convert a checker message to a violation.

    Returns C{None} for informational messages and warnings.

    @raise ExternalValidatorFailure:
        If the message reports a problem in the checker itself.
    """
    msg_type = message.get("type")
    subtype = message.get("subtype")
    text = message.get("message", "(no message)")

    if msg_type == "info":
        return None
    if msg_type == "non-document-error":
        subtype = subtype or "general"
        raise ExternalValidatorFailure(
            f"{subtype.capitalize()} error in checker: {text}"
        )
    if msg_type != "error":
        text = f'Undocumented message type "{msg_type}": {text}'

    if subtype == "fatal":
        text += " (fatal: this error blocks further checking)"
    line = message.get("lastLine", message.get("firstLine"))
    extract = message.get("extract")
    return Violation(
        "vnu",
        text,
        "critical" if subtype == "fatal" else "serious",
        line if isinstance(line, int) else None,
        extract.strip() if isinstance(extract, str) and extract.strip() else None,
    )


class VNUValidator(Validator):
    """Validates markup using the Nu Html Checker web service."""

    @classmethod
    def from_service(cls, service: str | None) -> "VNUValidator":
        """Create a validator for a service given as a port number on
        localhost, a URL or C{"launch"}.

        @raise ExternalValidatorFailure:
            If no service is given or it cannot be launched.
        """
        if service is None:
            raise ExternalValidatorFailure(
                "Online markup validation requested, but no v.Nu service configured"
            )
        if service == "launch":
            proc, url = launch_service(find_vnujar())
            return cls(url, proc)
        if service.isdigit():
            return cls(f"http://localhost:{service}")
        return cls(service)

    def __init__(self, service_url: str, process: "Popen[bytes] | None" = None):
        """Initialize a validator that uses the service at C{service_url}.

        If C{process} is given, it is the launched service, which will be
        terminated when this validator is closed.
        """
        self.service_url = service_url
        self.process = process
        self.client = VNUClient(service_url)

    def close(self) -> None:
        self.client.close()
        if self.process is not None:
            self.process.terminate()
            self.process.wait()
            self.process = None

    def validate(self, document: Document, options: ValidatorOptions) -> ValidationResult:
        data = document.source.encode("utf-8")
        errors = []
        try:
            for message in self.client.request(data, "text/html; charset=utf-8"):
                if options.debug:
                    _LOG.debug("v.Nu: %s", message)
                violation = message_to_violation(message)
                if violation is None:
                    _LOG.info("v.Nu: %s", message.get("message", "(no message)"))
                else:
                    errors.append(violation)
        except (HTTPException, OSError) as ex:
            raise ExternalValidatorFailure(
                f"Request to HTML checker failed: {ex}"
            ) from ex
        except (KeyError, ValueError) as ex:
            raise ExternalValidatorFailure(
                f"Parsing reply from HTML checker failed: {ex}"
            ) from ex

        if not options.quiet:
            _LOG.info(
                "v.Nu markup check of %s: %d errors",
                document.url or "document",
                len(errors),
            )
        return ValidationResult(errors)
