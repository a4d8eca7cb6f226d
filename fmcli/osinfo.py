"""Host operating system information for the `os` command"""

import getpass
import json
import os
import platform
from typing import List, Tuple

import psutil

CPUINFO_PATH = "/proc/cpuinfo"


def eol() -> str:
    """Platform line ending rendered as a quoted string literal"""
    return json.dumps(os.linesep)


def home_directory() -> str:
    return os.path.expanduser("~")


def username() -> str:
    """Login name of the user running the process"""
    return getpass.getuser()


def architecture() -> str:
    return platform.machine()


def _cpu_models(count: int) -> List[str]:
    """Model name of each logical CPU"""
    models = []
    try:
        with open(CPUINFO_PATH, "r") as f:
            for line in f:
                key, _, value = line.partition(":")
                if key.strip() == "model name":
                    models.append(value.strip())
    except OSError:
        pass

    if len(models) < count:
        fallback = platform.processor() or platform.machine() or "unknown"
        models.extend([fallback] * (count - len(models)))
    return models[:count]


def cpus() -> List[Tuple[str, str]]:
    """
    List of (model, speed) per logical CPU

    Speed is the current frequency in GHz with two decimals, or "unknown"
    when the platform does not report it.
    """
    count = psutil.cpu_count(logical=True) or 1
    models = _cpu_models(count)

    try:
        freqs = psutil.cpu_freq(percpu=True) or []
    except (NotImplementedError, OSError, AttributeError):
        freqs = []
    if len(freqs) == 1 and count > 1:
        freqs = freqs * count

    result = []
    for index, model in enumerate(models):
        if index < len(freqs) and freqs[index].current:
            speed = f"{freqs[index].current / 1000:.2f} GHz"
        else:
            speed = "unknown"
        result.append((model, speed))
    return result
