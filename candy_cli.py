# candy_cli.py
import argparse
import json
import logging

from candy_config import load_config
from candy_engine import CandyEngine
from candy_session import LevelSession


def build_parser():
    parser = argparse.ArgumentParser(description="Play the candy match-3 engine from the terminal.")
    parser.add_argument("--config", help="JSON config file (defaults to $CANDY_CONFIG)")
    parser.add_argument("--seed", type=int, help="Random seed for a repeatable board")
    parser.add_argument("--size", type=int, help="Board size (N for an NxN board)")
    parser.add_argument("--palette", type=int, help="Number of candy types")
    parser.add_argument("--level", type=int, default=1, help="Level number for the move budget")
    parser.add_argument("--swap", nargs=4, type=int, action="append", metavar=("R1", "C1", "R2", "C2"),
                        help="Swap two cells; may be given several times")
    parser.add_argument("--auto", type=int, default=0, help="Number of automatic moves to play")
    parser.add_argument("--bomb", action="store_true", help="Fire a colour bomb")
    parser.add_argument("--hint", action="store_true", help="Print a suggested move")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def print_board(engine):
    print(engine.board.pretty())
    print(f"Score: {engine.score}")


def main(argv=None):
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format="%(asctime)s - %(levelname)s - %(name)s - %(message)s")

    config = load_config(args.config)
    session = LevelSession(args.level)
    engine = CandyEngine(config=config, budget=session)
    engine.initialize(args.size, args.palette, seed=args.seed)
    print_board(engine)

    for r1, c1, r2, c2 in args.swap or []:
        result = engine.propose_swap(r1, c1, r2, c2)
        print(f"Swap ({r1}, {c1}) <-> ({r2}, {c2}): {json.dumps(result)}")
        print_board(engine)

    if args.bomb:
        print(f"Colour bomb: {json.dumps(engine.trigger_color_bomb())}")
        print_board(engine)

    if args.auto:
        print(f"Automatic moves: {json.dumps(engine.run_automatic_moves(args.auto))}")
        print_board(engine)

    if args.hint:
        print(f"Hint: {engine.hint()}")

    print(json.dumps(session.get_summary(engine.score), indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
