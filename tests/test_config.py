import base64

import pytest
import requests

from kuberepl.client.cluster import ClusterClient, LogStream
from kuberepl.core.config import DEFAULT_RANGE_SEPARATOR, SessionConfig, default_config_path
from kuberepl.core.errors import ConfigError, NoContextError, TransportError
from kuberepl.core.kubeconfig import KubeConfig, default_kubeconfig_path

from conftest import KUBECONFIG


class TestSessionConfig:
    def test_missing_file_gives_defaults(self, tmp_path):
        config = SessionConfig.load(tmp_path / "absent.yaml")
        assert config.range_separator == DEFAULT_RANGE_SEPARATOR
        assert config.editor is None
        assert config.kubectl == "kubectl"

    def test_config_dir_from_environment(self, tmp_path, monkeypatch):
        monkeypatch.setenv("KUBEREPL_CONFIG_DIR", str(tmp_path))
        assert default_config_path() == tmp_path / "config.yaml"

    def test_save_keeps_comments(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("# my editor\neditor: vim\n")
        config = SessionConfig.load(path)
        assert config.editor == "vim"

        config.set_option("range_separator", "== {name} ==")
        config.save()
        text = path.read_text()
        assert "# my editor" in text
        assert SessionConfig.load(path).range_separator == "== {name} =="

    def test_unknown_option(self, tmp_path):
        with pytest.raises(ConfigError, match="Possible values"):
            SessionConfig(path=tmp_path / "c.yaml").set_option("kubectl", "oc")

    def test_malformed_file(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("- just\n- a list\n")
        with pytest.raises(ConfigError):
            SessionConfig.load(path)

    def test_aliases_round_trip_with_comments(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("# shortcuts\naliases:\n  p: pods\n")
        config = SessionConfig.load(path)
        assert config.aliases == {"p": "pods"}

        config.set_alias("el", "logs --tail 50")
        config.save()
        assert "# shortcuts" in path.read_text()
        assert SessionConfig.load(path).aliases == {"p": "pods", "el": "logs --tail 50"}

        assert config.remove_alias("p") is True
        assert config.remove_alias("p") is False

    def test_aliases_must_be_a_mapping(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("aliases:\n- p\n")
        with pytest.raises(ConfigError):
            SessionConfig.load(path)


class TestKubeConfig:
    def test_resolve_strips_trailing_slash(self):
        ctx = KubeConfig(KUBECONFIG).resolve("dev")
        assert ctx.cluster.server == "https://dev.example:6443"
        assert ctx.cluster.insecure_skip_tls_verify is True
        assert ctx.user.token == "s3cr3t"
        assert ctx.namespace == "web"

    def test_context_names_sorted(self):
        assert KubeConfig(KUBECONFIG).context_names() == ["dev", "prod"]

    def test_unknown_context(self):
        with pytest.raises(NoContextError):
            KubeConfig(KUBECONFIG).resolve("staging")

    def test_context_without_cluster(self):
        raw = {"contexts": [{"name": "broken", "context": {"cluster": "nowhere"}}]}
        config = KubeConfig(raw)
        assert config.server_for("broken") is None
        with pytest.raises(ConfigError):
            config.resolve("broken")

    def test_load_file(self, tmp_path):
        path = tmp_path / "kubeconfig"
        path.write_text(
            "current-context: a\n"
            "contexts:\n- name: a\n  context: {cluster: c, user: u}\n"
            "clusters:\n- name: c\n  cluster: {server: 'https://a:443'}\n"
            "users:\n- name: u\n  user: {username: admin, password: pw}\n"
        )
        config = KubeConfig.load(path)
        assert config.current_context == "a"
        assert config.resolve("a").user.username == "admin"

    def test_first_kubeconfig_entry_wins(self, monkeypatch, tmp_path):
        monkeypatch.setenv("KUBECONFIG", f"{tmp_path / 'one'}:{tmp_path / 'two'}")
        assert default_kubeconfig_path() == tmp_path / "one"


class TestClusterClient:
    def test_token_and_insecure(self, tmp_path):
        client = ClusterClient(KubeConfig(KUBECONFIG).resolve("dev"), tmp_path)
        assert client.http.headers["Authorization"] == "Bearer s3cr3t"
        assert client.http.verify is False
        assert client.base_url == "https://dev.example:6443"

    def test_inline_certificates_written_to_workdir(self, tmp_path):
        encoded = base64.b64encode(b"PEM").decode()
        raw = {
            "contexts": [{"name": "x", "context": {"cluster": "c", "user": "u"}}],
            "clusters": [{"name": "c", "cluster": {"server": "https://x", "certificate-authority-data": encoded}}],
            "users": [{"name": "u", "user": {"client-certificate-data": encoded, "client-key-data": encoded}}],
        }
        client = ClusterClient(KubeConfig(raw).resolve("x"), tmp_path)
        assert open(client.http.verify, "rb").read() == b"PEM"
        cert, key = client.http.cert
        assert cert.startswith(str(tmp_path)) and key.startswith(str(tmp_path))


class TestLogStream:
    def test_readline_across_chunks(self):
        stream = LogStream(iter([b"one\ntw", b"o\nthree"]))
        assert stream.readline() == b"one\n"
        assert stream.readline() == b"two\n"
        assert stream.readline() == b"three"
        assert stream.readline() == b""

    def test_read_sizes(self):
        stream = LogStream(iter([b"abcdef", b"gh"]))
        assert stream.read(4) == b"abcd"
        assert stream.read() == b"efgh"
        assert stream.read(4) == b""

    def test_close_runs_callback_once(self):
        closed = []
        stream = LogStream(iter([b"x"]), on_close=lambda: closed.append(True))
        stream.close()
        stream.close()
        assert closed == [True]
        assert stream.read(1) == b""

    def test_interrupted_stream(self):
        def chunks():
            yield b"partial\n"
            raise requests.ConnectionError("reset")

        stream = LogStream(chunks())
        assert stream.readline() == b"partial\n"
        with pytest.raises(TransportError):
            stream.readline()
