from morph_engine.cli import main

main()
