from __future__ import annotations
import subprocess
from dataclasses import dataclass
from typing import Sequence, Optional

@dataclass
class CmdResult:
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0

def run_cmd(cmd: Sequence[str], cwd: Optional[str] = None, timeout: Optional[int] = 120) -> CmdResult:
    """Run without a shell; launch failures and timeouts come back as a failed CmdResult."""
    try:
        p = subprocess.run(
            list(cmd),
            cwd=cwd,
            text=True,
            capture_output=True,
            timeout=timeout,
            shell=False,
        )
    except FileNotFoundError:
        return CmdResult(127, "", f"command not found: {cmd[0]}")
    except subprocess.TimeoutExpired:
        return CmdResult(124, "", f"{cmd[0]} timed out after {timeout} seconds")
    except OSError as e:
        return CmdResult(126, "", f"could not run {cmd[0]}: {e}")
    return CmdResult(p.returncode, p.stdout, p.stderr)
