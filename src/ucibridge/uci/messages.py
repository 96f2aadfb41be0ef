"""UCI wire tokens, command builders and message parsers.

Moves and FENs are opaque here: nothing is validated against a board. The
python-chess helpers only decode a move token into squares when it happens
to be well-formed UCI.
"""

from collections.abc import Sequence
from dataclasses import dataclass, field

import chess

# Outbound
UCI = "uci"
ISREADY = "isready"
UCINEWGAME = "ucinewgame"
STOP = "stop"
QUIT = "quit"
STARTPOS = "startpos"

# Inbound
UCIOK = "uciok"
READYOK = "readyok"
BESTMOVE = "bestmove"
INFO = "info"


def position_command(fen: str = STARTPOS, moves: Sequence[str] | str = ()) -> str:
    """Build a `position` command.

    Args:
        fen: "startpos", a bare FEN, or a FEN already prefixed with "fen ".
        moves: Move tokens, as a sequence or a space-separated string.

    Returns:
        e.g. "position startpos moves e2e4 e7e5".
    """
    fen = fen.strip()
    if fen == STARTPOS or fen.startswith("fen "):
        parts = ["position", fen]
    else:
        parts = ["position", "fen", fen]

    if isinstance(moves, str):
        moves = moves.split()
    if moves:
        parts.append("moves")
        parts.extend(moves)
    return " ".join(parts)


def go_command(depth: int = 18, move_time_ms: int = 0) -> str:
    """Build a `go` command. A positive move time takes precedence over depth."""
    if move_time_ms > 0:
        return f"go movetime {move_time_ms}"
    return f"go depth {depth}"


def is_go_command(command: str) -> bool:
    tokens = command.split()
    return bool(tokens) and tokens[0] == "go"


@dataclass(frozen=True)
class BestMoveResult:
    """A parsed `bestmove <move> [ponder <move>]` line."""

    move: str
    ponder: str | None = None

    @property
    def uci_move(self) -> chess.Move | None:
        """The move as a python-chess Move, or None for `(none)`/`0000`/garbage."""
        try:
            move = chess.Move.from_uci(self.move)
        except ValueError:
            return None
        return move if move else None

    @property
    def from_square(self) -> str | None:
        move = self.uci_move
        return chess.square_name(move.from_square) if move else None

    @property
    def to_square(self) -> str | None:
        move = self.uci_move
        return chess.square_name(move.to_square) if move else None

    @property
    def promotion(self) -> str | None:
        move = self.uci_move
        if move is None or move.promotion is None:
            return None
        return chess.piece_symbol(move.promotion)


def parse_bestmove(line: str) -> BestMoveResult | None:
    """Parse a bestmove line; None if the move token is missing."""
    tokens = line.split()
    if len(tokens) < 2 or tokens[0] != BESTMOVE:
        return None
    ponder = None
    if len(tokens) >= 4 and tokens[2] == "ponder":
        ponder = tokens[3]
    return BestMoveResult(move=tokens[1], ponder=ponder)


@dataclass
class SearchInfo:
    """Structured view of an `info` line. Fields absent from the line stay None."""

    depth: int | None = None
    seldepth: int | None = None
    multipv: int | None = None
    score_cp: int | None = None
    score_mate: int | None = None
    nodes: int | None = None
    nps: int | None = None
    time_ms: int | None = None
    pv: list[str] = field(default_factory=list)
    string: str | None = None


_INT_FIELDS = {
    "depth": "depth",
    "seldepth": "seldepth",
    "multipv": "multipv",
    "nodes": "nodes",
    "nps": "nps",
    "time": "time_ms",
}


def parse_info(line: str) -> SearchInfo:
    """Best-effort parse of an `info ...` line.

    Unknown keys are skipped; malformed numbers leave the field unset.
    """
    info = SearchInfo()
    tokens = line.split()
    i = 1 if tokens and tokens[0] == INFO else 0

    while i < len(tokens):
        key = tokens[i]
        if key == "string":
            info.string = " ".join(tokens[i + 1 :])
            break
        if key == "pv":
            info.pv = tokens[i + 1 :]
            break
        if key == "score" and i + 2 < len(tokens):
            kind, value = tokens[i + 1], tokens[i + 2]
            try:
                if kind == "cp":
                    info.score_cp = int(value)
                elif kind == "mate":
                    info.score_mate = int(value)
            except ValueError:
                pass
            i += 3
            continue
        if key in _INT_FIELDS and i + 1 < len(tokens):
            try:
                setattr(info, _INT_FIELDS[key], int(tokens[i + 1]))
            except ValueError:
                pass
            i += 2
            continue
        i += 1

    return info
