from piper_server.cli import main

raise SystemExit(main())
