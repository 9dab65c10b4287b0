from toothbrush.cli import main

main()
