# This file is part of netapply. See LICENSE file for license information.
"""Common utility functions for interacting with subprocess."""

import collections
import logging
import os
import subprocess
import time
from typing import List, Optional, Union

LOG = logging.getLogger(__name__)

SubpResult = collections.namedtuple("SubpResult", ["stdout", "stderr"])


class ProcessExecutionError(IOError):
    MESSAGE_TMPL = (
        "%(description)s\n"
        "Command: %(cmd)s\n"
        "Exit code: %(exit_code)s\n"
        "Reason: %(reason)s\n"
        "Stdout: %(stdout)s\n"
        "Stderr: %(stderr)s"
    )
    empty_attr = "-"

    def __init__(
        self,
        stdout=None,
        stderr=None,
        exit_code=None,
        cmd=None,
        description=None,
        reason=None,
        errno=None,
    ):
        self.cmd = cmd or self.empty_attr
        self.description = (
            description or "Unexpected error while running command."
        )
        self.exit_code = (
            exit_code if isinstance(exit_code, int) else self.empty_attr
        )
        self.stderr = self._indent_text(stderr) if stderr else self.empty_attr
        self.stdout = self._indent_text(stdout) if stdout else self.empty_attr
        self.reason = reason or self.empty_attr
        if errno:
            self.errno = errno
        message = self.MESSAGE_TMPL % {
            "description": self.description,
            "cmd": self.cmd,
            "exit_code": self.exit_code,
            "stdout": self.stdout,
            "stderr": self.stderr,
            "reason": self.reason,
        }
        IOError.__init__(self, message)

    @staticmethod
    def _indent_text(text: str, indent_level=8) -> str:
        """Indent all but the first line of text for readable output."""
        return text.rstrip("\n").replace("\n", "\n" + " " * indent_level)

    @property
    def summary(self) -> str:
        """One line description suitable for a run report."""
        detail = self.stderr if self.stderr != self.empty_attr else ""
        if not detail and self.stdout != self.empty_attr:
            detail = self.stdout
        if not detail and self.reason != self.empty_attr:
            detail = str(self.reason)
        first = detail.strip().splitlines()[0] if detail.strip() else ""
        return "exit code %s%s" % (
            self.exit_code,
            ": %s" % first if first else "",
        )


def subp(
    args: List[str],
    *,
    rcs: Optional[List[int]] = None,
    capture=True,
    logstring=False,
    update_env=None,
    timeout=None,
) -> SubpResult:
    """Run a subprocess.

    :param args: command to run in a list. [cmd, arg1, arg2...]
    :param rcs:
        a list of allowed return codes.  If subprocess exits with a value not
        in this list, a ProcessExecutionError will be raised.
    :param capture:
        boolean indicating if output should be captured.  If True, then stderr
        and stdout will be returned as text.  If False, they are not
        redirected and (None, None) is returned.
    :param logstring:
        the command will be logged to DEBUG.  If it contains info that should
        not be logged, then logstring will be logged instead.
    :param update_env:
        update the environment for this command with this dictionary.
        this will not affect the current processes os.environ.
    :param timeout: maximum time for the subprocess to run, passed directly to
        Popen.communicate().  Expiry raises ProcessExecutionError.
    """
    if rcs is None:
        rcs = [0]

    env = os.environ.copy()
    if update_env:
        env.update(update_env)

    LOG.debug(
        "Running command %s with allowed return codes %s (capture=%s)",
        logstring if logstring else args,
        rcs,
        capture,
    )

    stdout: Union[int, None] = None
    stderr: Union[int, None] = None
    if capture:
        stdout = subprocess.PIPE
        stderr = subprocess.PIPE

    try:
        before = time.monotonic()
        sp = subprocess.Popen(
            args,
            stdout=stdout,
            stderr=stderr,
            stdin=subprocess.DEVNULL,
            env=env,
        )
        try:
            out, err = sp.communicate(timeout=timeout)
        except subprocess.TimeoutExpired as e:
            sp.kill()
            sp.communicate()
            raise ProcessExecutionError(
                cmd=args, reason="timed out after %ss" % timeout
            ) from e
        total = time.monotonic() - before
        if total > 0.1:
            LOG.debug(
                "%s took %.3ss to run", logstring if logstring else args, total
            )
    except OSError as e:
        raise ProcessExecutionError(
            cmd=args, reason=e, errno=e.errno, stdout="-", stderr="-"
        ) from e

    if isinstance(out, bytes):
        out = out.decode("utf-8", "replace")
    if isinstance(err, bytes):
        err = err.decode("utf-8", "replace")

    rc = sp.returncode
    if rc not in rcs:
        raise ProcessExecutionError(
            stdout=out, stderr=err, exit_code=rc, cmd=args
        )
    return SubpResult(out, err)


def which(program, search=None) -> Optional[str]:
    """Return the path of program on the search path, or None.

    On Windows a program without an extension is also tried with each
    extension from PATHEXT.
    """
    if os.path.dirname(program):
        # given a path, do not search PATH
        return program if is_exe(program) else None

    if search is None:
        search = [
            p.strip('"') for p in os.environ.get("PATH", "").split(os.pathsep)
        ]
    candidates = [program]
    if not os.path.splitext(program)[1] and os.environ.get("PATHEXT"):
        candidates.extend(
            program + ext.lower()
            for ext in os.environ["PATHEXT"].split(os.pathsep)
            if ext
        )

    for path in search:
        if not path:
            continue
        for name in candidates:
            ppath = os.path.join(os.path.abspath(path), name)
            if is_exe(ppath):
                return ppath
    return None


def is_exe(fpath):
    # return boolean indicating if fpath exists and is executable.
    return os.path.isfile(fpath) and os.access(fpath, os.X_OK)
