from workers.backup_scheduler.main import main

raise SystemExit(main())
