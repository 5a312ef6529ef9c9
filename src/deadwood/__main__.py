from deadwood.cli import main

raise SystemExit(main())
