from configbridge.cli.main import main

raise SystemExit(main())
