import io
import logging
from pathlib import Path
from typing import Dict, Optional, TextIO, Tuple, Union

from pydantic import BaseModel, ConfigDict

from signal_control.domain.errors import FeedParseError
from signal_control.domain.models import CycleTarget

logger = logging.getLogger(__name__)

Columns = Tuple[int, int]


class FeedLayout(BaseModel):
    """Fixed column slices of an approach line, as [start, end) character offsets."""
    model_config = ConfigDict(frozen=True)

    intersection: Columns = (1, 6)
    approach: Columns = (9, 11)
    phase: Columns = (16, 18)
    green_time: Columns = (20, 22)
    counts: Tuple[Columns, ...] = ((29, 31), (42, 44))

    @staticmethod
    def read(line: str, columns: Columns) -> str:
        start, end = columns
        return line[start:end].strip()


# Known feed exports; they differ in how wide the approach id column is
LAYOUTS: Dict[str, FeedLayout] = {
    "v1": FeedLayout(),
    "v2": FeedLayout(approach=(8, 13)),
}


class ScatsFeedReader:
    """Reads cycle by cycle through a SCATS strategic monitor export.

    A cycle block is laid out as::

        Thursday 20-June-2013 06:00 SS  63   PL 3.1  PVs3.3 CT   33 +0 RL 33  SA 301 DS 14
        Int  SA/LK  PH  PT!  DS  VO  VK!  DS  VO  VK! ...
         460   301   A  32!  14   2   2!  12   2   1! ...
        A=<64> B=36

    The header line is not trusted; the cycle length is the sum of the phase greens.
    Approach lines run until one no longer starts with an integer intersection id.
    Subsystem files list several intersections, only `intersection_id` is kept.
    """

    def __init__(self, source: Union[str, Path, TextIO], intersection_id: Union[str, int],
                 layout: Union[str, FeedLayout] = "v1"):
        self.intersection_id = str(intersection_id).strip()
        self.layout = LAYOUTS[layout] if isinstance(layout, str) else layout
        self.eof = False
        self.last_cycle: Optional[CycleTarget] = None
        self.cycles_read = 0
        self.vehicles_read = 0
        self._owns_stream = False
        self._stream: Optional[TextIO] = None

        if isinstance(source, (str, Path)):
            try:
                self._stream = open(source, "r")
                self._owns_stream = True
            except OSError as exc:
                logger.error("Couldn't load SCATS data file %s: %s", source, exc)
                self.eof = True
        else:
            self._stream = source

    @classmethod
    def from_text(cls, text: str, intersection_id, layout="v1") -> "ScatsFeedReader":
        return cls(io.StringIO(text), intersection_id, layout)

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    def close(self):
        if self._owns_stream and self._stream is not None:
            self._stream.close()
        self._stream = None
        self.eof = True

    def next_cycle(self) -> Optional[CycleTarget]:
        """Next cycle target for the intersection, or None at end of feed or on bad input."""
        if self.eof or self._stream is None:
            return None
        try:
            cycle = self._parse_next_cycle()
        except FeedParseError as exc:
            logger.error("Skipping malformed SCATS cycle for intersection %s: %s", self.intersection_id, exc)
            return None
        except (OSError, UnicodeDecodeError) as exc:
            logger.error("Exception reading SCATS data: %s", exc)
            self.eof = True
            return None

        if cycle is not None:
            self.last_cycle = cycle
            self.cycles_read += 1
        return cycle

    def _readline(self) -> Optional[str]:
        line = self._stream.readline()
        if line == "":
            return None
        return line.rstrip("\r\n")

    def _parse_next_cycle(self) -> Optional[CycleTarget]:
        header = self._readline()
        if header is None:
            logger.info("End of SCATS data reached after %d cycles (%d vehicles)",
                        self.cycles_read, self.vehicles_read)
            self.eof = True
            return None

        # column headers
        if self._readline() is None:
            self.eof = True
            raise FeedParseError("cycle block truncated after header line")

        phase_durations: Dict[str, int] = {}
        approach_inflows: Dict[str, int] = {}
        problems = []
        layout = self.layout

        while True:
            line = self._readline()
            if line is None:
                break
            site = layout.read(line, layout.intersection)
            try:
                int(site)
            except ValueError:
                break  # end of approach lines

            if site != self.intersection_id:
                continue

            phase_id = layout.read(line, layout.phase)
            green_field = layout.read(line, layout.green_time)
            try:
                green_time = int(green_field)
            except ValueError:
                problems.append(f"bad phase time {green_field!r} in line {line!r}")
                continue
            if green_time > 0:
                phase_durations[phase_id] = green_time

            approach_id = layout.read(line, layout.approach)
            count = 0
            for columns in layout.counts:
                try:
                    count += int(layout.read(line, columns))
                except ValueError:
                    # "-" marks a detector without data
                    continue
            self.vehicles_read += count
            approach_inflows[approach_id] = approach_inflows.get(approach_id, 0) + count

        if problems:
            raise FeedParseError("; ".join(problems))

        return CycleTarget(
            cycle_duration=sum(phase_durations.values()),
            phase_durations=phase_durations,
            approach_inflows=approach_inflows,
        )
