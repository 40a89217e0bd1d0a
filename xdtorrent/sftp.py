"""Filesystem driver that stores data on a remote host over SFTP."""

from __future__ import annotations

import base64
import fnmatch
import posixpath
import stat as _stat
from typing import List, Optional, Tuple

import paramiko

from xdtorrent import log, util
from xdtorrent.fs import Driver

_MAGIC = set("*?[")


def _has_magic(pattern: str) -> bool:
    return any(ch in _MAGIC for ch in pattern)


class SftpFile:
    """A remote file with positional reads and writes."""

    def __init__(self, handle) -> None:
        self._f = handle

    def __enter__(self) -> "SftpFile":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def read(self, size: int = -1) -> bytes:
        return self._f.read(size)

    def write(self, data: bytes) -> int:
        self._f.write(data)
        return len(data)

    def read_at(self, size: int, offset: int) -> bytes:
        self._f.seek(offset, 0)
        data = self._f.read(size)
        self._f.seek(0, 0)
        return data

    def write_at(self, data: bytes, offset: int) -> int:
        self._f.seek(offset, 0)
        n = self.write(data)
        self._f.seek(0, 0)
        return n

    def sync(self) -> None:
        """Push any buffered data to the remote host."""
        self._f.flush()

    def close(self) -> None:
        self._f.close()


def _load_private_key(path: str) -> paramiko.PKey:
    last: Optional[Exception] = None
    for key_class in (paramiko.Ed25519Key, paramiko.ECDSAKey, paramiko.RSAKey):
        try:
            return key_class.from_private_key_file(path)
        except paramiko.SSHException as exc:
            last = exc
    raise paramiko.SSHException(f"unsupported private key in {path}: {last}")


def _parse_public_key(blob: bytes) -> paramiko.PKey:
    key_type = paramiko.Message(blob).get_text()
    if key_type == "ssh-rsa":
        return paramiko.RSAKey(data=blob)
    if key_type == "ssh-ed25519":
        return paramiko.Ed25519Key(data=blob)
    if key_type.startswith("ecdsa-sha2-"):
        return paramiko.ECDSAKey(data=blob)
    raise paramiko.SSHException(f"unsupported public key type: {key_type}")


class SftpFS(Driver):
    """Driver over an SFTP connection authenticated with a key pair.

    ``sftp_client`` may be an already open client; otherwise one is
    connected on first use.
    """

    def __init__(
        self,
        username: str,
        hostname: str,
        keyfile: str,
        remotekey: str,
        port: int,
        sftp_client=None,
    ) -> None:
        self.username = username
        self.hostname = hostname
        self.keyfile = keyfile
        self.remotekey = remotekey
        self.port = port
        self._ssh: Optional[paramiko.SSHClient] = None
        self._sftp = sftp_client

    def _ensure_ssh(self) -> paramiko.SSHClient:
        if self._ssh is None:
            log.debug("read key %s", self.keyfile)
            our_key = _load_private_key(self.keyfile)
            their_key = _parse_public_key(base64.b64decode(self.remotekey, validate=True))
            client = paramiko.SSHClient()
            host_entry = self.hostname if self.port == 22 else f"[{self.hostname}]:{self.port}"
            client.get_host_keys().add(host_entry, their_key.get_name(), their_key)
            client.set_missing_host_key_policy(paramiko.RejectPolicy())
            log.debug("sftp dial to %s:%d", self.hostname, self.port)
            client.connect(
                self.hostname,
                port=self.port,
                username=self.username,
                pkey=our_key,
                look_for_keys=False,
                allow_agent=False,
            )
            self._ssh = client
        return self._ssh

    def _ensure_sftp(self):
        if self._sftp is None:
            self._sftp = self._ensure_ssh().open_sftp()
        return self._sftp

    def _conn(self):
        try:
            return self._ensure_sftp()
        except Exception:
            self.close()
            raise

    def open(self) -> None:
        self._ensure_sftp()

    def close(self) -> None:
        if self._sftp is not None:
            client, self._sftp = self._sftp, None
            client.close()
        if self._ssh is not None:
            ssh, self._ssh = self._ssh, None
            ssh.close()

    def ensure_dir(self, path: str) -> None:
        client = self._conn()
        parents = "/" if posixpath.isabs(path) else ""
        for name in path.split("/"):
            if not name:
                continue
            parents = posixpath.join(parents, name)
            if self.file_exists(parents):
                continue
            try:
                client.mkdir(parents)
            except OSError as exc:
                try:
                    attrs = client.stat(parents)
                except OSError:
                    raise exc from None
                if not _stat.S_ISDIR(attrs.st_mode):
                    raise FileExistsError(f"File exists: {parents}") from exc

    def file_exists(self, path: str) -> bool:
        if self._sftp is None:
            return False
        try:
            self._sftp.stat(path)
        except OSError:
            return False
        return True

    def open_read(self, path: str) -> SftpFile:
        return SftpFile(self._conn().open(path, "r"))

    def open_write(self, path: str) -> SftpFile:
        return SftpFile(self._conn().open(path, "w+"))

    def glob(self, pattern: str) -> List[str]:
        return self._glob(self._conn(), pattern)

    def _glob(self, client, pattern: str) -> List[str]:
        if not _has_magic(pattern):
            try:
                client.stat(pattern)
            except OSError:
                return []
            return [pattern]
        directory, base = posixpath.split(pattern)
        dirs = self._glob(client, directory) if _has_magic(directory) else [directory]
        matches: List[str] = []
        for d in dirs:
            try:
                names = client.listdir(d or ".")
            except OSError:
                continue
            for name in sorted(names):
                if fnmatch.fnmatchcase(name, base):
                    matches.append(posixpath.join(d, name) if d else name)
        return matches

    def ensure_file(self, path: str, size: int) -> None:
        if self.file_exists(path):
            return
        self._conn()
        directory, _ = self.split(path)
        if directory:
            self.ensure_dir(directory)
        with self.open_write(path) as f:
            if size > 0:
                util.write_zeros(f, size)

    def _remove_tree(self, client, root: str) -> None:
        for entry in client.listdir_attr(root):
            child = posixpath.join(root, entry.filename)
            if _stat.S_ISDIR(entry.st_mode):
                self._remove_tree(client, child)
            else:
                client.remove(child)
        client.rmdir(root)

    def remove_all(self, path: str) -> None:
        client = self._conn()
        attrs = client.stat(path)
        if _stat.S_ISDIR(attrs.st_mode):
            self._remove_tree(client, path)
        else:
            client.remove(path)

    def remove(self, path: str) -> None:
        self._conn().remove(path)

    def join(self, *args: str) -> str:
        self._conn()
        parts = [p for p in args if p]
        if not parts:
            return ""
        return posixpath.normpath(posixpath.join(*parts))

    def move(self, old_path: str, new_path: str) -> None:
        directory, _ = self.split(new_path)
        self.ensure_dir(directory)
        self._conn().rename(old_path, new_path)

    def split(self, path: str) -> Tuple[str, str]:
        idx = path.rfind("/")
        return path[: idx + 1], path[idx + 1 :]

    def stat(self, path: str):
        return self._conn().stat(path)


def sftp(username: str, hostname: str, keyfile: str, remotekey: str, port: int) -> SftpFS:
    """Create an SFTP driver; the connection is made on first use."""
    return SftpFS(username, hostname, keyfile, remotekey, port)