import sys

from app.bootstrap import run


def main() -> int:
    try:
        return run(sys.argv[1:])
    except Exception:
        # Print traceback to stderr so it is captured when running from a
        # console (preferred for debugging frozen executables).
        import traceback

        traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
