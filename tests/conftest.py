import copy
import io
import os
import struct
import tarfile
import zipfile
import zlib
from datetime import datetime
from pathlib import Path
from typing import Dict, Optional, Union

import pytest
import yaml

from config.settings import RestoreSettings, ENV_PASSWORD_KEY


SAMPLE_DUMP = """-- Dump of app
CREATE TABLE users (id INTEGER PRIMARY KEY, name TEXT);
INSERT INTO users VALUES (1, 'alice');
INSERT INTO users VALUES (2, 'bob; the builder');
CREATE TABLE posts (id INTEGER PRIMARY KEY, user_id INTEGER REFERENCES users(id), title TEXT);
INSERT INTO posts VALUES (1, 1, 'hello');
"""

SAMPLE_FILES = {
    "db-dumps/sqlite-app.sql": SAMPLE_DUMP,
    "var/www/html/public/uploads/avatar.txt": "avatar-from-backup",
    "var/www/html/public/uploads/nested/doc.txt": "doc-from-backup",
    "var/www/html/storage/app/reports/report.txt": "report-from-backup",
}

Contents = Dict[str, Union[str, bytes]]


def _as_bytes(data: Union[str, bytes]) -> bytes:
    return data.encode() if isinstance(data, str) else data


def _deep_merge(base: dict, overrides: dict) -> dict:
    merged = copy.deepcopy(base)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


# ---------------------------------------------------------------------------
# ZipCrypto writer (the standard library can read but not write encrypted zips)
# ---------------------------------------------------------------------------

def _crc_update(crc: int, byte: int) -> int:
    return (~zlib.crc32(bytes([byte]), (~crc) & 0xFFFFFFFF)) & 0xFFFFFFFF


class _ZipCryptoEncrypter:
    def __init__(self, password: bytes):
        self.keys = [0x12345678, 0x23456789, 0x34567890]
        for byte in password:
            self._update(byte)

    def _update(self, byte: int) -> None:
        k0, k1, k2 = self.keys
        k0 = _crc_update(k0, byte)
        k1 = (k1 + (k0 & 0xFF)) & 0xFFFFFFFF
        k1 = (k1 * 134775813 + 1) & 0xFFFFFFFF
        k2 = _crc_update(k2, (k1 >> 24) & 0xFF)
        self.keys = [k0, k1, k2]

    def encrypt(self, data: bytes) -> bytes:
        out = bytearray()
        for byte in data:
            temp = (self.keys[2] | 2) & 0xFFFF
            out.append(byte ^ (((temp * (temp ^ 1)) >> 8) & 0xFF))
            self._update(byte)
        return bytes(out)


def write_encrypted_zip(path: Path, files: Contents, password: str) -> None:
    """Write a stored (uncompressed) ZipCrypto archive."""
    dos_date = ((2024 - 1980) << 9) | (2 << 5) | 1
    dos_time = 0
    body = io.BytesIO()
    central = io.BytesIO()

    for name, data in files.items():
        data = _as_bytes(data)
        crc = zlib.crc32(data) & 0xFFFFFFFF
        encrypter = _ZipCryptoEncrypter(password.encode())
        header = bytes(11) + bytes([(crc >> 24) & 0xFF])
        payload = encrypter.encrypt(header) + encrypter.encrypt(data)
        filename = name.encode()
        offset = body.tell()

        body.write(struct.pack(
            zipfile.structFileHeader, zipfile.stringFileHeader,
            20, 0, 0x1, zipfile.ZIP_STORED, dos_time, dos_date,
            crc, len(payload), len(data), len(filename), 0
        ))
        body.write(filename)
        body.write(payload)

        central.write(struct.pack(
            zipfile.structCentralDir, zipfile.stringCentralDir,
            20, 3, 20, 0, 0x1, zipfile.ZIP_STORED, dos_time, dos_date,
            crc, len(payload), len(data), len(filename), 0, 0, 0, 0,
            0o100644 << 16, offset
        ))
        central.write(filename)

    cd_offset = body.tell()
    cd_bytes = central.getvalue()
    end = struct.pack(
        zipfile.structEndArchive, zipfile.stringEndArchive,
        0, 0, len(files), len(files), len(cd_bytes), cd_offset, 0
    )
    path.write_bytes(body.getvalue() + cd_bytes + end)


def corrupt_member(path: Path, member: str) -> None:
    """Flip every compressed byte of one archive member in place."""
    with zipfile.ZipFile(path) as zf:
        info = zf.getinfo(member)
    raw = bytearray(path.read_bytes())
    name_length, extra_length = struct.unpack("<HH", raw[info.header_offset + 26:info.header_offset + 30])
    start = info.header_offset + 30 + name_length + extra_length
    for i in range(start, start + info.compress_size):
        raw[i] ^= 0xFF
    path.write_bytes(bytes(raw))


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Keep host settings out of the tests."""
    monkeypatch.delenv(ENV_PASSWORD_KEY, raising=False)
    for key in list(os.environ):
        if key.upper().startswith("RESTORE_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture
def app_root(tmp_path) -> Path:
    root = tmp_path / "app"
    root.mkdir()
    return root


@pytest.fixture
def disk_root(tmp_path) -> Path:
    root = tmp_path / "disk"
    (root / "laravel-backup").mkdir(parents=True)
    return root


@pytest.fixture
def backup_dir(disk_root) -> Path:
    return disk_root / "laravel-backup"


@pytest.fixture
def sqlite_url(tmp_path) -> str:
    return f"sqlite:///{(tmp_path / 'app.db').as_posix()}"


@pytest.fixture
def settings_data(app_root, disk_root, sqlite_url, tmp_path) -> dict:
    return {
        "app_base_path": str(app_root),
        "temp_directory": str(tmp_path / "scratch" / "temp-restore"),
        "disks": {"local": {"driver": "local", "root": str(disk_root)}},
        "default_disk": "local",
        "database": {
            "default_connection": "sqlite",
            "connections": {"sqlite": sqlite_url},
        },
        "restoration": {
            "show_progress": False,
            "max_retries": 2,
            "retry_delay_seconds": 0,
        },
        "health_checks": [],
    }


@pytest.fixture
def make_settings(settings_data):
    def factory(**overrides) -> RestoreSettings:
        return RestoreSettings(**_deep_merge(settings_data, overrides))
    return factory


@pytest.fixture
def settings(make_settings) -> RestoreSettings:
    return make_settings()


@pytest.fixture
def config_file(tmp_path, settings_data):
    def factory(**overrides) -> Path:
        path = tmp_path / "restore.yaml"
        path.write_text(yaml.safe_dump(_deep_merge(settings_data, overrides)))
        return path
    return factory


@pytest.fixture
def make_archive(backup_dir):
    """Create a backup archive in the backup directory of the local disk."""
    def factory(
        name: str = "2024-02-01-00-00-00.zip",
        files: Optional[Contents] = None,
        password: Optional[str] = None,
        mtime: Optional[datetime] = None
    ) -> Path:
        files = SAMPLE_FILES if files is None else files
        path = backup_dir / name

        if password:
            write_encrypted_zip(path, files, password)
        elif name.endswith((".tar.gz", ".tar")):
            with tarfile.open(path, "w:gz" if name.endswith(".gz") else "w") as tf:
                for member, data in files.items():
                    data = _as_bytes(data)
                    info = tarfile.TarInfo(member)
                    info.size = len(data)
                    tf.addfile(info, io.BytesIO(data))
        else:
            with zipfile.ZipFile(path, "w", zipfile.ZIP_DEFLATED) as zf:
                for member, data in files.items():
                    zf.writestr(member, _as_bytes(data))

        if mtime is not None:
            ts = mtime.timestamp()
            os.utime(path, (ts, ts))
        return path
    return factory
