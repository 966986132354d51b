"""
Tests for operation dispatch and result shaping (mocked client)
"""
import unittest
from unittest.mock import MagicMock, patch

from robolly_generator import operations
from robolly_generator.conversion import ConversionResult
from robolly_generator.services.api import RobollyClient
from robolly_generator.services.errors import ApiError, UnsupportedOperationError


def make_client():
    client = MagicMock(spec=RobollyClient)
    client.base_url = 'https://api.robolly.com'
    return client


class TestDispatch(unittest.TestCase):

    def test_unknown_operation(self):
        with self.assertRaises(UnsupportedOperationError) as ctx:
            operations.execute(make_client(), 'deleteEverything', {})
        self.assertIn('Unsupported operation: deleteEverything', str(ctx.exception))

    def test_every_listed_operation_has_a_handler(self):
        self.assertEqual(set(operations.OPERATION_NAMES), set(operations.HANDLERS))


class TestListings(unittest.TestCase):

    def test_get_templates_filters_video(self):
        client = make_client()
        client.list_templates.side_effect = [
            {'templates': [{'id': 'a', 'transition': None}, {'id': 'b', 'transition': {}}],
             'hasMore': True, 'paginationCursorNext': 'n1'},
            {'templates': [{'id': 'c', 'transition': {'duration': 1}}], 'hasMore': False},
        ]
        items = operations.execute(client, 'getTemplates', {'templates_type': 'video'})
        self.assertEqual([i.json['id'] for i in items], ['b', 'c'])
        client.list_templates.assert_any_call('n1', 100)

    def test_get_templates_limit(self):
        client = make_client()
        client.list_templates.return_value = {
            'templates': [{'id': str(i), 'transition': None} for i in range(10)],
            'hasMore': True, 'paginationCursorNext': 'next',
        }
        items = operations.execute(client, 'getTemplates', {'return_all': False, 'limit': '3'})
        self.assertEqual(len(items), 3)
        self.assertEqual(client.list_templates.call_count, 1)

    def test_get_templates_uses_configured_page_size(self):
        client = make_client()
        client.list_templates.return_value = {'templates': [], 'hasMore': False}
        operations.execute(client, 'getTemplates', {}, {'pagination': {'page_size': 25}})
        client.list_templates.assert_called_once_with(None, 25)

    def test_get_templates_video_includes_templates_without_transition(self):
        client = make_client()
        client.list_templates.return_value = {
            'templates': [{'id': 'x'}, {'id': 'y', 'transition': None}], 'hasMore': False,
        }
        items = operations.execute(client, 'getTemplates', {'templates_type': 'video'})
        self.assertEqual([i.json['id'] for i in items], ['x'])

    def test_get_templates_stops_on_malformed_page(self):
        for page in ({'message': 'oops'}, [], None):
            client = make_client()
            client.list_templates.return_value = page
            self.assertEqual(operations.execute(client, 'getTemplates', {}), [])

    def test_get_renders(self):
        client = make_client()
        client.list_renders.return_value = {'value': [{'id': 'r1'}, {'id': 'r2'}], 'hasMore': False}
        items = operations.execute(client, 'getRenders', {})
        self.assertEqual([i.json['id'] for i in items], ['r1', 'r2'])
        self.assertIsNone(items[0].binary)

    def test_get_template_elements_returns_raw_response(self):
        client = make_client()
        client.get_accepted_modifications.return_value = {'acceptedModifications': [{'key': 'title'}]}
        items = operations.execute(client, 'getTemplateElements', {'template_id': 't1'})
        self.assertEqual(items[0].json, {'acceptedModifications': [{'key': 'title'}]})
        client.get_accepted_modifications.assert_called_once_with('t1')


class TestGenerateImage(unittest.TestCase):

    def test_link_only_skips_download(self):
        client = make_client()
        items = operations.execute(client, 'generateImage', {
            'image_template': 'img', 'image_format': '.png', 'scale': '2',
            'elements': [('title', 'Hi')], 'link_only': True,
        })
        self.assertEqual(items[0].json, {
            'url': 'https://api.robolly.com/templates/img/render.png?scale=2&title=Hi',
        })
        client.request_binary.assert_not_called()

    def test_hidden_link(self):
        client = make_client()
        items = operations.execute(client, 'generateImage', {
            'image_template': 'img', 'hidden_link': True, 'link_only': True,
        })
        self.assertTrue(items[0].json['url'].startswith('https://api.robolly.com/rd/'))
        self.assertTrue(items[0].json['url'].endswith('.jpg'))

    def test_download_attaches_binary(self):
        client = make_client()
        client.request_binary.return_value = b'JPEGDATA'
        items = operations.execute(client, 'generateImage', {'image_template': 'img'})
        item = items[0]
        self.assertTrue(item.json['success'])
        self.assertEqual(item.json['size'], 8)
        self.assertEqual(item.binary.file_name, 'robolly-image.jpg')
        self.assertEqual(item.binary.mime_type, 'image/jpeg')
        self.assertEqual(item.binary.data, b'JPEGDATA')

    @patch('robolly_generator.operations.convert_image')
    def test_conversion_replaces_binary(self, mock_convert):
        mock_convert.return_value = ConversionResult(
            data=b'RAWPIXELS', format='bin', extension='bin',
            mime_type='application/octet-stream', metadata={'width': 2, 'height': 1, 'channels': 3},
        )
        client = make_client()
        client.request_binary.return_value = b'PNG'
        items = operations.execute(client, 'generateImage', {
            'image_template': 'img', 'image_format': '.png', 'convert': '.raw',
        })
        mock_convert.assert_called_once_with(b'PNG', '.raw', '')
        item = items[0]
        self.assertEqual(item.binary.file_name, 'robolly-image.bin')
        self.assertEqual(item.json['size'], 9)
        self.assertEqual(item.json['width'], 2)

    @patch('robolly_generator.operations.convert_image')
    def test_extension_override_keeps_encoded_mime_type(self, mock_convert):
        mock_convert.return_value = ConversionResult(
            data=b'RIFFWEBP', format='png', extension='png', mime_type='image/webp',
        )
        client = make_client()
        client.request_binary.return_value = b'JPEG'
        items = operations.execute(client, 'generateImage', {
            'image_template': 'img', 'convert': '.webp', 'extension': 'png',
        })
        binary = items[0].binary
        self.assertEqual(binary.file_name, 'robolly-image.png')
        self.assertEqual(binary.mime_type, 'image/webp')

    def test_validation(self):
        client = make_client()
        with self.assertRaises(ValueError):
            operations.execute(client, 'generateImage', {})
        with self.assertRaises(ValueError):
            operations.execute(client, 'generateImage', {'image_template': 'x', 'image_format': '.gif'})
        with self.assertRaises(ValueError):
            operations.execute(client, 'generateImage', {'image_template': 'x', 'scale': '5'})


class TestGenerateVideo(unittest.TestCase):

    def test_template_render(self):
        client = make_client()
        client.request_binary.return_value = b'MP4DATA'
        items = operations.execute(client, 'generateVideo', {
            'video_template': 'vid', 'duration': 2, 'fps': 30, 'elements': {'title': 'x'},
        })
        client.request_binary.assert_called_once_with(
            'https://api.robolly.com/templates/vid/render.mp4?duration=2000&fps=30&title=x')
        self.assertEqual(items[0].binary.file_name, 'robolly-video.mp4')
        self.assertEqual(items[0].json['format'], '.mp4')

    @patch('robolly_generator.operations.convert_video')
    def test_conversion(self, mock_convert):
        mock_convert.return_value = ConversionResult(
            data=b'GIF89a', format='.gif', extension='gif', mime_type='image/gif', metadata={'fps': 10.0},
        )
        client = make_client()
        client.request_binary.return_value = b'MP4DATA'
        items = operations.execute(client, 'generateVideo', {
            'video_template': 'vid', 'convert': '.gif', 'probe': False,
        }, {'video': {'duration': 5, 'fps': 24}})
        mock_convert.assert_called_once_with(b'MP4DATA', '.gif', '', probe=False)
        self.assertEqual(items[0].binary.file_name, 'robolly-video.gif')
        self.assertEqual(items[0].json['format'], '.gif')
        self.assertEqual(items[0].json['fps'], 10.0)

    def test_invalid_fps(self):
        with self.assertRaises(ValueError):
            operations.execute(make_client(), 'generateVideo', {'video_template': 'v', 'fps': 12})

    def test_movie_generation(self):
        client = make_client()
        client.start_video_render.return_value = 'https://api.robolly.com/v1/renders/r1'
        client.poll_render.return_value = 'https://cdn.test/movie.mp4'
        payload = '{"timeline": [{"duration": 30000}]}'
        items = operations.execute(client, 'generateVideo', {
            'movie_generation': True, 'payload': payload, 'attempts': 7,
        })
        self.assertEqual(items[0].json, {
            'success': True, 'videoUrl': 'https://cdn.test/movie.mp4', 'status': 'completed',
        })
        client.start_video_render.assert_called_once_with(payload, retries=3, delay=2, timeout=10)
        client.poll_render.assert_called_once_with(
            'https://api.robolly.com/v1/renders/r1', attempts=7, delay=60, timeout=15)

    def test_movie_requires_payload(self):
        with self.assertRaises(ValueError):
            operations.execute(make_client(), 'generateVideo', {'movie_generation': True})


class TestPickers(unittest.TestCase):

    def test_template_picker_video_only(self):
        client = make_client()
        client.list_templates.return_value = {
            'templates': [{'id': 'a', 'name': 'Still', 'transition': None},
                          {'id': 'b', 'name': 'Motion', 'transition': {}}],
            'hasMore': False,
        }
        options = operations.template_picker(client, 'generateVideo')
        self.assertEqual(options, [{'name': 'Motion', 'value': 'b', 'description': 'Template ID: b'}])

    def test_template_picker_swallows_errors(self):
        client = make_client()
        client.list_templates.side_effect = ApiError('down')
        with self.assertLogs('robolly_generator.operations', level='ERROR'):
            self.assertEqual(operations.template_picker(client), [])

    def test_template_picker_rejects_malformed_page(self):
        client = make_client()
        client.list_templates.return_value = {'message': 'oops'}
        with self.assertLogs('robolly_generator.operations', level='ERROR') as logs:
            self.assertEqual(operations.template_picker(client), [])
        self.assertIn('Invalid response format', logs.output[0])

    def test_element_picker_uses_operation_template(self):
        client = make_client()
        client.get_accepted_modifications.return_value = {
            'acceptedModifications': [{'key': 'title', 'elementType': 'text', 'type': 'text'}],
        }
        options = operations.element_picker(client, 'generateImage', {'image_template': 'img'})
        client.get_accepted_modifications.assert_called_once_with('img')
        self.assertEqual([o['value'] for o in options], ['title', 'title.textColor'])

    def test_element_picker_without_template(self):
        client = make_client()
        self.assertEqual(operations.element_picker(client, 'generateVideo', {}), [])
        client.get_accepted_modifications.assert_not_called()


if __name__ == '__main__':
    unittest.main()
