# remote.py
from __future__ import annotations

import io
import stat
from contextlib import contextmanager
from dataclasses import dataclass, field, fields
from pathlib import Path, PurePosixPath
from typing import Iterator, List, Optional, Tuple

import paramiko
from scp import SCPClient, SCPException

from . import settings
from .errors import (
    AlreadyExistsError,
    LocalIOError,
    NotFoundError,
    RemoteChannelError,
    RemoteCommandError,
    RemoteConnectError,
)
from .model import Task
from .redact import Redactor
from .ui.console import get_console


# ----------------------------------------------------------------------
# Connection
# ----------------------------------------------------------------------

@dataclass(repr=False)
class RemoteTarget:
    """Address and credentials of an SSH-reachable host."""
    address: str
    username: str
    password: str
    port: int = settings.SSH_PORT

    def __repr__(self) -> str:
        text = (
            f"RemoteTarget(address={self.address!r}, username={self.username!r}, "
            f"password={self.password!r}, port={self.port!r})"
        )
        return Redactor([self.password]).scrub(text)


def open_client(target: RemoteTarget) -> paramiko.SSHClient:
    """TCP connect, SSH handshake and password authentication."""
    client = paramiko.SSHClient()
    client.set_missing_host_key_policy(paramiko.AutoAddPolicy())
    try:
        client.connect(
            hostname=target.address,
            port=target.port,
            username=target.username,
            password=target.password,
            timeout=settings.CONNECT_TIMEOUT,
            allow_agent=False,
            look_for_keys=False,
        )
    except (paramiko.SSHException, OSError) as e:
        client.close()
        raise RemoteConnectError(
            f"Failed to connect via ssh to {target.address}:{target.port} as {target.username}"
        ) from e
    return client


@contextmanager
def connect(target: RemoteTarget) -> Iterator[paramiko.SSHClient]:
    # one fresh connection per task invocation, always torn down
    client = open_client(target)
    try:
        yield client
    finally:
        client.close()


class RemoteTask(Task):
    """Base for tasks that talk to a RemoteTarget; renders with the password scrubbed."""

    target: RemoteTarget

    def describe(self) -> str:
        parts = ", ".join(f"{f.name}={getattr(self, f.name)!r}" for f in fields(self))
        return Redactor([self.target.password]).scrub(f"{type(self).__name__}({parts})")

    def __repr__(self) -> str:
        return self.describe()


# ----------------------------------------------------------------------
# SSH command batches
# ----------------------------------------------------------------------

def run_command(client: paramiko.SSHClient, command: str) -> Tuple[str, int]:
    """Execute one command on its own channel. Returns (combined output, exit status)."""
    try:
        channel = client.get_transport().open_session()
        channel.set_combine_stderr(True)
        channel.exec_command(command)
        output = channel.makefile("rb").read()
        exit_code = channel.recv_exit_status()
        channel.close()
    except (paramiko.SSHException, OSError) as e:
        raise RemoteChannelError(f"Error while executing command via ssh: `{command}`") from e

    if isinstance(output, bytes):
        output = output.decode("utf-8", errors="replace")
    return output, exit_code


@dataclass
class SshCommand:
    """One command with the exit codes that count as success for it."""
    command: str
    allowed_exit_codes: List[int] = field(default_factory=lambda: [0])

    def run(self, client: paramiko.SSHClient) -> str:
        output, exit_code = run_command(client, self.command)
        if exit_code not in self.allowed_exit_codes:
            raise RemoteCommandError(command=self.command, exit_code=exit_code, output=output)
        return output


@dataclass(repr=False)
class SshTask(RemoteTask):
    target: RemoteTarget
    commands: List[SshCommand]

    def execute(self) -> None:
        console = get_console()
        redactor = Redactor([self.target.password])
        with connect(self.target) as client:
            for command in self.commands:
                console.print_debug(
                    redactor.scrub(f"ssh {self.target.address}: {command.command}")
                )
                output = command.run(client)
                if output:
                    console.print_debug(redactor.scrub(output.rstrip()))


# ----------------------------------------------------------------------
# Local file helpers
# ----------------------------------------------------------------------

def read_local_file(path: Path) -> bytes:
    try:
        return path.read_bytes()
    except OSError as e:
        raise LocalIOError(f"Error while reading file {path}") from e


def write_local_file(path: Path, data: bytes) -> None:
    try:
        path.write_bytes(data)
    except OSError as e:
        raise LocalIOError(f"Could not create local file {path}") from e


def make_local_dir(path: Path) -> None:
    try:
        path.mkdir()
    except OSError as e:
        raise LocalIOError(f"Error while creating directory {path}") from e


# ----------------------------------------------------------------------
# Transfers
# ----------------------------------------------------------------------

@dataclass(repr=False)
class RemoteTransfer(RemoteTask):
    target: RemoteTarget
    remote_path: str
    local_path: str


@dataclass(repr=False)
class ScpFileDownload(RemoteTransfer):
    """Single file only; the whole file is buffered before it is written."""

    def execute(self) -> None:
        buffer = io.BytesIO()
        with connect(self.target) as client:
            try:
                with SCPClient(client.get_transport()) as scp:
                    scp.getfo(self.remote_path, buffer)
            except (SCPException, paramiko.SSHException, OSError) as e:
                raise RemoteChannelError(
                    f"Error while receiving {self.remote_path} via scp"
                ) from e

        write_local_file(Path(self.local_path), buffer.getvalue())


@dataclass(repr=False)
class ScpFileUpload(RemoteTransfer):
    def execute(self) -> None:
        content = read_local_file(Path(self.local_path))
        with connect(self.target) as client:
            try:
                with SCPClient(client.get_transport()) as scp:
                    scp.putfo(
                        io.BytesIO(content),
                        self.remote_path,
                        mode=settings.SCP_FILE_MODE,
                        size=len(content),
                    )
            except (SCPException, paramiko.SSHException, OSError) as e:
                raise RemoteChannelError(
                    f"Error while creating file {self.remote_path} on remote machine"
                ) from e


def open_sftp(client: paramiko.SSHClient) -> paramiko.SFTPClient:
    try:
        return client.open_sftp()
    except (paramiko.SSHException, OSError) as e:
        raise RemoteChannelError("Could not create sftp subsystem") from e


def remote_stat(sftp: paramiko.SFTPClient, path: PurePosixPath) -> Optional[paramiko.SFTPAttributes]:
    """Stat a remote path; None if it does not exist."""
    try:
        return sftp.stat(str(path))
    except FileNotFoundError:
        return None
    except (paramiko.SSHException, OSError) as e:
        raise RemoteChannelError(f"Error while getting stats of remote path {path}") from e


def _is_dir(attrs: paramiko.SFTPAttributes) -> bool:
    return stat.S_ISDIR(attrs.st_mode or 0)


def _is_file(attrs: paramiko.SFTPAttributes) -> bool:
    return stat.S_ISREG(attrs.st_mode or 0)


def download_sftp_file(sftp: paramiko.SFTPClient, remote: PurePosixPath, local: Path) -> None:
    try:
        with sftp.open(str(remote), "rb") as remote_file:
            data = remote_file.read()
    except (paramiko.SSHException, OSError) as e:
        raise RemoteChannelError(f"Could not read remote file {remote}") from e
    write_local_file(local, data)


def download_sftp_dir(sftp: paramiko.SFTPClient, remote: PurePosixPath, local: Path) -> None:
    try:
        entries = sftp.listdir_attr(str(remote))
    except (paramiko.SSHException, OSError) as e:
        raise RemoteChannelError(f"Error while reading directory {remote} via sftp") from e

    for entry in entries:
        child_remote = remote / entry.filename
        child_local = local / entry.filename
        if _is_dir(entry):
            make_local_dir(child_local)
            download_sftp_dir(sftp, child_remote, child_local)
        else:
            download_sftp_file(sftp, child_remote, child_local)


def upload_sftp_file(sftp: paramiko.SFTPClient, local: Path, remote: PurePosixPath) -> None:
    content = read_local_file(local)
    try:
        with sftp.open(str(remote), "wb") as remote_file:
            remote_file.write(content)
    except (paramiko.SSHException, OSError) as e:
        raise RemoteChannelError(f"Error while writing to remote file {remote}") from e


def make_remote_dir(sftp: paramiko.SFTPClient, remote: PurePosixPath) -> None:
    try:
        sftp.mkdir(str(remote), mode=settings.SFTP_DIR_MODE)
    except (paramiko.SSHException, OSError) as e:
        raise RemoteChannelError(f"Could not create remote directory {remote}") from e


def upload_sftp_dir(sftp: paramiko.SFTPClient, local: Path, remote: PurePosixPath) -> None:
    try:
        entries = sorted(local.iterdir())
    except OSError as e:
        raise LocalIOError(f"Error while reading directory {local}") from e

    for entry in entries:
        child_remote = remote / entry.name
        if entry.is_dir():
            make_remote_dir(sftp, child_remote)
            upload_sftp_dir(sftp, entry, child_remote)
        else:
            upload_sftp_file(sftp, entry, child_remote)


@dataclass(repr=False)
class SftpDownload(RemoteTransfer):
    """
    Download a file or a whole directory tree.

    File: refuses to overwrite an existing local file; an existing local
    directory receives the file under its remote name.
    Directory: the local directory must not exist yet, its parent must.
    The first failing file aborts the transfer; nothing is rolled back.
    """

    def execute(self) -> None:
        local = Path(self.local_path)
        remote = PurePosixPath(self.remote_path)

        with connect(self.target) as client:
            sftp = open_sftp(client)
            try:
                attrs = remote_stat(sftp, remote)
                if attrs is None:
                    raise NotFoundError(f"Remote path {remote} does not exist")

                if _is_file(attrs):
                    if local.is_file():
                        raise AlreadyExistsError(f"File {local} already exists")
                    destination = local / remote.name if local.is_dir() else local
                    download_sftp_file(sftp, remote, destination)
                elif _is_dir(attrs):
                    if local.is_dir():
                        raise AlreadyExistsError(f"Directory {local} already exists")
                    if not local.parent.is_dir():
                        raise NotFoundError(f"Path {local.parent} does not exist")
                    make_local_dir(local)
                    download_sftp_dir(sftp, remote, local)
                else:
                    raise NotFoundError(
                        f"Remote path {remote} is neither a file nor a directory"
                    )
            finally:
                sftp.close()


@dataclass(repr=False)
class SftpUpload(RemoteTransfer):
    """
    Upload a file or a whole directory tree.

    A directory upload refuses to touch a remote path that already exists.
    """

    def execute(self) -> None:
        local = Path(self.local_path)
        remote = PurePosixPath(self.remote_path)

        if not local.is_file() and not local.is_dir():
            raise NotFoundError(f"Local {local} does not exist")

        with connect(self.target) as client:
            sftp = open_sftp(client)
            try:
                if local.is_file():
                    upload_sftp_file(sftp, local, remote)
                else:
                    if remote_stat(sftp, remote) is not None:
                        raise AlreadyExistsError(f"Remote path {remote} already exists")
                    make_remote_dir(sftp, remote)
                    upload_sftp_dir(sftp, local, remote)
            finally:
                sftp.close()
