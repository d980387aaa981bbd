from media_resolver.main import run

run()
