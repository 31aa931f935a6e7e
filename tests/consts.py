TEST_BUCKET_NAME = "test-media-uploads"
TEST_PUBLIC_BASE_URL = "https://cdn.test.local"
TEST_JWT_SECRET = "test-secret"
TEST_PROTECTED_URL = "https://cdn.test.local/f/defaults%2Favatar.png"

TEST_IMAGE_NAME = "test-image.jpg"
TEST_IMAGE_CONTENT = b"\xff\xd8\xff\xe0test image content"
TEST_IMAGE_CONTENT_TYPE = "image/jpeg"
