expected_paths = {
    "/albums": {"get", "post"},
    "/albums/all": {"get"},
    "/albums/bulk-move-media": {"post"},
    "/albums/move-media": {"post"},
    "/albums/{album_id}": {"get", "put", "delete"},
    "/albums/{album_id}/add-media": {"post"},
    "/albums/{album_id}/children": {"get"},
    "/albums/{album_id}/move": {"put"},
    "/albums/{album_id}/path": {"get"},
    "/albums/{album_id}/remove-media/{media_id}": {"delete"},
    "/healthz": {"get"},
    "/locked/access/{reference}": {"post"},
    "/locked/check-access": {"get"},
    "/locked/clear-access": {"post"},
    "/locked/has-password": {"get"},
    "/locked/media": {"get"},
    "/locked/refresh-access": {"post"},
    "/locked/set-password": {"post"},
    "/locked/unlock/{reference}": {"post"},
    "/locked/verify-password": {"post"},
    "/media": {"get"},
    "/media/bulk-move-media": {"post"},
    "/media/bulk-restore": {"post"},
    "/media/bulk-trash": {"post"},
    "/media/move-media": {"post"},
    "/media/permanent/{media_id}": {"delete"},
    "/media/storage": {"get"},
    "/media/upload": {"post"},
    "/media/{media_id}/favorite": {"post"},
    "/media/{media_id}/lock": {"post"},
    "/media/{media_id}/restore": {"post"},
    "/media/{media_id}/trash": {"post"},
    "/ping": {"get"},
    "/storage/usage": {"get"},
    "/trash": {"get"},
    "/trash/delete": {"post"},
    "/trash/empty": {"post"},
    "/version": {"get"},
}


def test_api_paths_match_published_routes(client):
    openapi = client.get("/openapi.json").json()
    actual_paths = {path: set(info.keys()) for path, info in openapi["paths"].items()}
    assert actual_paths == expected_paths
