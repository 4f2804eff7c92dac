"""`python -m par_queens` runs the same CLI as the `par-queens` script."""
from par_queens.cli import cli


def main():
    cli(prog_name="par-queens")


if __name__ == "__main__":
    main()
