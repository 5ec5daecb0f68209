from hashtag_trends.main import main

raise SystemExit(main())
