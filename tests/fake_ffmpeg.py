"""Stand-in for the ffmpeg binary, driven by FAKE_FFMPEG_* environment variables."""

import os
import sys
import time
from pathlib import Path

args = sys.argv[1:]

if args == ["-version"]:
    print("ffmpeg version 6.1-fake Copyright (c) 2000-2024 the FFmpeg developers")
    raise SystemExit(0)

track_dir = os.environ.get("FAKE_FFMPEG_TRACK_DIR")
marker = None
if track_dir:
    marker = Path(track_dir) / f"running-{os.getpid()}"
    marker.touch()

print(f"fake ffmpeg args: {' '.join(args)}")
sys.stderr.write(os.environ.get("FAKE_FFMPEG_STDERR", "fake ffmpeg progress\n"))

for index, arg in enumerate(args[:-1]):
    if arg == "-i" and not Path(args[index + 1]).exists():
        sys.stderr.write(f"{args[index + 1]}: No such file or directory\n")
        raise SystemExit(1)

time.sleep(float(os.environ.get("FAKE_FFMPEG_SLEEP", "0")))

if marker is not None:
    running = len(list(Path(track_dir).glob("running-*")))
    (Path(track_dir) / f"seen-{os.getpid()}").write_text(str(running), "utf-8")
    marker.unlink()

exit_code = int(os.environ.get("FAKE_FFMPEG_EXIT_CODE", "0"))
if exit_code == 0:
    size = int(os.environ.get("FAKE_FFMPEG_OUTPUT_BYTES", "16"))
    for arg in args:
        path = Path(arg)
        if path.is_absolute() and path.parent.name == "outputs":
            path.write_bytes(b"x" * size)
raise SystemExit(exit_code)
