from taskboard_app.cli import main

main()
