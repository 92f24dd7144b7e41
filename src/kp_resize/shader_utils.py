import os
import subprocess
import tempfile


def compile_source(glsl_code):
    """
    Compile GLSL to SpirV and return as bytes.
    """

    if not isinstance(glsl_code, str):
        raise TypeError("glslangValidator expects a string.")

    with tempfile.TemporaryDirectory() as tmp_dir:
        filename1 = os.path.join(tmp_dir, "shader.comp")
        filename2 = os.path.join(tmp_dir, "shader.spv")

        with open(filename1, "wb") as f:
            f.write(glsl_code.encode())

        # Note: -O means optimize, use -O0 to disable optimization
        try:
            subprocess.check_output(
                ["glslangValidator", "-S", "comp", "-V", "-Os", "-o", filename2, filename1], stderr=subprocess.STDOUT
            )
        except subprocess.CalledProcessError as err:
            e = "Could not compile glsl to Spir-V:\n" + err.output.decode()
            raise Exception(e)

        with open(filename2, "rb") as f:
            binary = f.read()

    return binary
