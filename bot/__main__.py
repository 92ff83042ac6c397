from bot.runtime import run


raise SystemExit(run())
