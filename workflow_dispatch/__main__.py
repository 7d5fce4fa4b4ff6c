from workflow_dispatch.main import main

raise SystemExit(main())
