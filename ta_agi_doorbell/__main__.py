from ta_agi_doorbell.main import run

raise SystemExit(run())
