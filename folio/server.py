"""Local preview server for a built site."""

import functools
import http.server
import logging

logger = logging.getLogger('Folio.server')


def create_server(directory, host='localhost', port=8000):
    handler = functools.partial(http.server.SimpleHTTPRequestHandler, directory=str(directory))
    return http.server.ThreadingHTTPServer((host, port), handler)


def serve(directory, host='localhost', port=8000):
    """Serve ``directory`` over HTTP until interrupted."""
    httpd = create_server(directory, host, port)
    logger.info(f"Serving http://{host}:{httpd.server_address[1]}/ (site dir: {directory})")
    try:
        httpd.serve_forever()
    except KeyboardInterrupt:
        logger.info("Serving stopped.")
    finally:
        httpd.server_close()
