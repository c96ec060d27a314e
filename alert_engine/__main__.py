from alert_engine.cli import main

main()
