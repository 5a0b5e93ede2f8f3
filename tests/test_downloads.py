import os
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path

import pytest

from magekit import downloads, gopath, xplat
from magekit.downloads import DownloadOptions


@pytest.fixture(autouse=True)
def _no_proxy(monkeypatch):
    monkeypatch.setenv("NO_PROXY", "*")
    monkeypatch.setenv("no_proxy", "*")


@pytest.fixture
def serve():
    servers = []

    def start(status, body=b""):
        class Handler(BaseHTTPRequestHandler):
            def do_GET(self):
                self.send_response(status)
                self.send_header("Content-Length", str(len(body)))
                self.end_headers()
                self.wfile.write(body)

            def log_message(self, *args):
                pass

        server = ThreadingHTTPServer(("127.0.0.1", 0), Handler)
        threading.Thread(target=server.serve_forever, daemon=True).start()
        servers.append(server)
        return f"http://127.0.0.1:{server.server_address[1]}/mybin"

    yield start
    for server in servers:
        server.shutdown()
        server.server_close()


def _current_goos():
    return downloads.render_template("{{.GOOS}}", DownloadOptions(url_template="", name="x"))


def _current_goarch():
    return downloads.render_template("{{.GOARCH}}", DownloadOptions(url_template="", name="x"))


def test_download_to_gopath_bin(serve, monkeypatch, tmp_path):
    monkeypatch.setenv("GOPATH", str(tmp_path / "go"))
    monkeypatch.setenv("PATH", os.environ.get("PATH", ""))
    url = serve(200, b"echo ok")

    with gopath.use_temp_gopath():
        downloads.download_to_gopath_bin(DownloadOptions(url_template=url, name="mybin"))
        installed = Path(gopath.get_gopath_bin()) / ("mybin" + xplat.file_ext())
        assert installed.read_bytes() == b"echo ok"
        assert xplat.in_path(gopath.get_gopath_bin())


def test_download_not_found(serve, tmp_path):
    url = serve(404)
    with pytest.raises(ConnectionError, match="404 Not Found"):
        downloads.download(tmp_path, DownloadOptions(url_template=url, name="mybin"))
    assert not (tmp_path / ("mybin" + xplat.file_ext())).exists()


def test_download_found(serve, tmp_path):
    url = serve(200, b"echo ok")
    downloads.download(tmp_path, DownloadOptions(url_template=url, name="mybin"))
    assert (tmp_path / ("mybin" + xplat.file_ext())).read_bytes() == b"echo ok"


def test_download_uses_hook_result(serve, tmp_path):
    url = serve(200, b"archive bytes")
    seen = []

    def hook(archive_path):
        seen.append(Path(archive_path).read_bytes())
        out = Path(archive_path).parent / "extracted"
        out.write_bytes(b"binary bytes")
        return str(out)

    downloads.download(tmp_path, DownloadOptions(url_template=url, name="tool", hook=hook))
    assert seen == [b"archive bytes"]
    assert (tmp_path / ("tool" + xplat.file_ext())).read_bytes() == b"binary bytes"


def test_download_hook_error_propagates(serve, tmp_path):
    url = serve(200, b"data")

    def hook(archive_path):
        raise ValueError("cannot extract")

    with pytest.raises(ValueError, match="cannot extract"):
        downloads.download(tmp_path, DownloadOptions(url_template=url, name="tool", hook=hook))


def test_render_template_version_and_ext():
    opts = DownloadOptions(url_template="", name="x", version="v1.2.3", ext=".zip")
    rendered = downloads.render_template("https://example.com/{{.VERSION}}/tool{{.EXT}}", opts)
    assert rendered == "https://example.com/v1.2.3/tool.zip"


def test_render_template_without_actions():
    opts = DownloadOptions(url_template="", name="x")
    assert downloads.render_template("plain/text", opts) == "plain/text"


def test_render_template_os_replacement():
    goos = _current_goos()
    opts = DownloadOptions(url_template="", name="x", os_replacement={goos: "customos"})
    assert downloads.render_template("{{.GOOS}}-{{ .GOOS }}", opts) == "customos-customos"


def test_render_template_arch_replacement():
    goarch = _current_goarch()
    opts = DownloadOptions(url_template="", name="x", arch_replacement={goarch: "customarch"})
    assert downloads.render_template("{{.GOARCH}}", opts) == "customarch"


def test_render_template_replacement_for_other_os_is_ignored():
    goos = _current_goos()
    opts = DownloadOptions(url_template="", name="x", os_replacement={"not-" + goos: "other"})
    assert downloads.render_template("{{.GOOS}}", opts) == goos


def test_render_template_unknown_field():
    with pytest.raises(ValueError, match="NOPE"):
        downloads.render_template("{{.NOPE}}", DownloadOptions(url_template="", name="x"))


def test_render_template_unclosed_action():
    with pytest.raises(ValueError, match="error parsing"):
        downloads.render_template("{{.VERSION", DownloadOptions(url_template="", name="x"))


def test_render_template_unsupported_action():
    with pytest.raises(ValueError, match="error parsing"):
        downloads.render_template("{{if .VERSION}}x{{end}}", DownloadOptions(url_template="", name="x"))