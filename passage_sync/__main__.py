from passage_sync.cli import main

main()
